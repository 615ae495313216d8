from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12
    refresh_token_expire_minutes: int = 60 * 24 * 30
    database_url: str = "sqlite:///./kiosco.db"
    backend_cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Zona horaria del kiosco, usada para los filtros hoy / semana / mes
    timezone: str = "America/Argentina/Buenos_Aires"

    # Hash bcrypt de la clave de supervisor para cargar mercadería.
    # Sin valor, solo los administradores pueden ingresar stock.
    supervisor_passphrase_hash: Optional[str] = None

    # "atomic": venta, stock y caja en una sola transacción.
    # "sequential": la venta se confirma primero y los efectos posteriores
    # se informan como advertencias si fallan.
    sale_commit_mode: str = "atomic"

    # "aggregate": efectivo esperado = apertura + balance de todos los métodos.
    # "cash_only": efectivo esperado = saldo del método efectivo.
    expected_cash_mode: str = "aggregate"

    money_epsilon: Decimal = Decimal("0.01")

    seed_demo: bool = False
    demo_admin_password: str = "admin"
    demo_cashier_password: str = "vendedor"

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
