def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_login_refresh_and_me(client, admin):
    r = client.post("/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401

    r = client.post("/auth/login", json={"username": "admin", "password": "admin-pass"})
    assert r.status_code == 200
    tokens = r.json()
    assert tokens["token_type"] == "bearer"

    r = client.get("/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert r.status_code == 200
    assert r.json()["username"] == "admin"
    assert r.json()["role"] == "admin"

    r = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert r.status_code == 200
    # Un access token no sirve como refresh
    r = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert r.status_code == 401


def test_requires_token(client):
    assert client.get("/products/").status_code == 401
    assert client.get("/shifts/active").status_code == 401


def test_shift_sale_and_close_flow(client, auth_headers, cashier, products):
    headers = auth_headers(cashier)

    assert client.get("/shifts/active", headers=headers).status_code == 404

    r = client.post("/shifts/start", json={"opening_cash": 100}, headers=headers)
    assert r.status_code == 200
    shift = r.json()
    assert shift["active"] is True
    assert shift["opening_cash"] == 100.0
    assert shift["user_name"] == "Vendedor Demo"

    r = client.post("/shifts/start", json={"opening_cash": 500}, headers=headers)
    assert r.json()["id"] == shift["id"]

    r = client.post(
        "/sales/",
        json={
            "shift_id": shift["id"],
            "items": [{"product_id": products["AGUA500"].id, "quantity": 2}],
            "payments": [{"method": "efectivo", "amount": 60}, {"method": "qr", "amount": 40}],
            "customer_name": "Juan",
            "customer_lot": "12",
        },
        headers=headers,
    )
    assert r.status_code == 200, r.text
    sale = r.json()
    assert sale["total"] == 100.0
    assert sale["payment_method"] == "efectivo"
    assert sale["warnings"] == []
    assert sale["payments_defaulted"] is False

    r = client.post(
        "/cash/transactions",
        json={
            "shift_id": shift["id"],
            "type": "expense",
            "category": "gasto",
            "amount": 20,
            "payment_method": "efectivo",
            "description": "Artículos de limpieza",
        },
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["amount"] == 20.0

    r = client.get("/cash/transactions", params={"shift_id": shift["id"]}, headers=headers)
    assert len(r.json()) == 3

    r = client.get(f"/shifts/{shift['id']}/reconciliation", params={"closing_cash": 170}, headers=headers)
    rec = r.json()
    assert rec["balance_by_method"]["efectivo"] == 140.0
    assert rec["balance_by_method"]["qr"] == 40.0
    assert rec["expected_cash"] == 180.0
    assert rec["difference"]["status"] == "shortage"
    assert rec["difference"]["difference"] == -10.0

    r = client.post(f"/shifts/{shift['id']}/close", json={"closing_cash": 180}, headers=headers)
    assert r.status_code == 200
    closing = r.json()
    assert closing["status"] == "balanced"
    assert closing["message"] == "La caja cuadra"
    assert closing["shift"]["active"] is False
    assert closing["shift"]["total_sales"] == 100.0
    assert closing["shift"]["total_expenses"] == 20.0

    r = client.post(f"/shifts/{shift['id']}/close", json={"closing_cash": 180}, headers=headers)
    assert r.status_code == 409

    r = client.post(
        "/sales/",
        json={"shift_id": shift["id"], "items": [{"product_id": products["AGUA500"].id, "quantity": 1}]},
        headers=headers,
    )
    assert r.status_code == 409


def test_sale_errors_map_to_http(client, auth_headers, cashier, products, open_shift):
    headers = auth_headers(cashier)
    r = client.post(
        "/sales/",
        json={
            "shift_id": open_shift.id,
            "items": [{"product_id": products["AGUA500"].id, "quantity": 2}],
            "payments": [{"method": "efectivo", "amount": 90}],
        },
        headers=headers,
    )
    assert r.status_code == 400
    assert "90.00" in r.json()["detail"]

    r = client.post(
        "/sales/",
        json={"shift_id": open_shift.id, "items": [{"product_id": 999, "quantity": 1}]},
        headers=headers,
    )
    assert r.status_code == 404

    r = client.post(
        "/sales/",
        json={
            "shift_id": open_shift.id,
            "items": [{"product_id": products["ALF01"].id, "quantity": 1}],
            "payments": [],
        },
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["payments"] == [{"method": "efectivo", "amount": 75.0}]
    assert r.json()["payments_defaulted"] is True

    sale_id = r.json()["id"]
    assert client.get(f"/sales/{sale_id}", headers=headers).json()["sale_number"] == r.json()["sale_number"]
    assert len(client.get("/sales/", params={"shift_id": open_shift.id}, headers=headers).json()) == 1


def test_products_admin_only_and_unique_code(client, auth_headers, admin, cashier, products):
    payload = {"code": "COCA500", "name": "Coca-Cola 500ml", "category": "Bebida", "price": 1200, "stock": 10}

    r = client.post("/products/", json=payload, headers=auth_headers(cashier))
    assert r.status_code == 403

    r = client.post("/products/", json=payload, headers=auth_headers(admin))
    assert r.status_code == 200
    product = r.json()
    assert product["price"] == 1200.0

    r = client.post("/products/", json=payload, headers=auth_headers(admin))
    assert r.status_code == 409

    r = client.put(f"/products/{product['id']}", json={"code": "AGUA500"}, headers=auth_headers(admin))
    assert r.status_code == 409

    r = client.put(f"/products/{product['id']}", json={"price": 1300}, headers=auth_headers(admin))
    assert r.json()["price"] == 1300.0

    r = client.get("/products/", params={"q": "coca"}, headers=auth_headers(cashier))
    assert [p["code"] for p in r.json()] == ["COCA500"]

    r = client.get("/products/low-stock", headers=auth_headers(cashier))
    assert [p["code"] for p in r.json()] == ["ALF01"]


def test_receive_stock_and_purchases(client, auth_headers, admin, cashier, products, open_shift):
    r = client.post(
        "/inventory/receive",
        json={"product_id": products["AGUA500"].id, "quantity": 5},
        headers=auth_headers(cashier),
    )
    assert r.status_code == 403

    r = client.post(
        "/inventory/receive",
        json={"product_id": products["AGUA500"].id, "quantity": 5, "supplier": "Prov"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["new_stock"] == 15

    r = client.get("/inventory/movements", params={"movement_type": "purchase"}, headers=auth_headers(admin))
    assert len(r.json()) == 1

    r = client.post(
        "/purchases/",
        json={"supplier": "Prov", "items": [{"product_id": products["ALF01"].id, "quantity": 10, "unit_cost": 40}]},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    invoice = r.json()
    assert invoice["total"] == 400.0
    assert invoice["remaining"] == 400.0

    r = client.post(
        f"/purchases/{invoice['id']}/payments",
        json={"shift_id": open_shift.id, "amount": 400, "payment_method": "transferencia"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200

    r = client.get(f"/purchases/{invoice['id']}", headers=auth_headers(admin))
    assert r.json()["status"] == "pagada"
    assert len(r.json()["payments"]) == 1


def test_configuration(client, auth_headers, admin, cashier):
    r = client.get("/configuration/", headers=auth_headers(cashier))
    assert r.status_code == 200
    assert r.json()["business_name"] == "Mi Kiosco"

    r = client.put("/configuration/", json={"business_name": "Kiosco Club"}, headers=auth_headers(cashier))
    assert r.status_code == 403

    r = client.put(
        "/configuration/",
        json={"business_name": "Kiosco Club", "receipt_message": "Gracias por su compra"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["business_name"] == "Kiosco Club"
    assert r.json()["currency"] == "$"


def test_shift_access_is_per_operator(client, auth_headers, admin, cashier):
    admin_shift = client.post("/shifts/start", json={"opening_cash": 0}, headers=auth_headers(admin)).json()
    r = client.get(f"/shifts/{admin_shift['id']}", headers=auth_headers(cashier))
    assert r.status_code == 403

    r = client.get("/shifts/", headers=auth_headers(cashier))
    assert r.json() == []
    r = client.get("/shifts/", headers=auth_headers(admin))
    assert len(r.json()) == 1

def test_cashier_cannot_operate_on_another_operators_shift(client, auth_headers, admin, cashier, products):
    admin_shift = client.post("/shifts/start", json={"opening_cash": 0}, headers=auth_headers(admin)).json()
    r = client.post(
        "/cash/transactions",
        json={"shift_id": admin_shift["id"], "type": "income", "category": "venta", "amount": 10,
              "payment_method": "efectivo"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200

    cashier_headers = auth_headers(cashier)
    r = client.post(
        "/cash/transactions",
        json={"shift_id": admin_shift["id"], "type": "expense", "category": "gasto", "amount": 5,
              "payment_method": "efectivo"},
        headers=cashier_headers,
    )
    assert r.status_code == 403

    r = client.post(
        "/sales/",
        json={"shift_id": admin_shift["id"], "items": [{"product_id": products["AGUA500"].id, "quantity": 1}]},
        headers=cashier_headers,
    )
    assert r.status_code == 403
    stock = client.get("/products/", params={"q": "AGUA500"}, headers=cashier_headers).json()[0]["stock"]
    assert stock == 10

    r = client.get("/cash/transactions", params={"shift_id": admin_shift["id"]}, headers=cashier_headers)
    assert r.status_code == 403
    assert client.get("/cash/transactions", headers=cashier_headers).json() == []
    assert len(client.get("/cash/transactions", headers=auth_headers(admin)).json()) == 1

    r = client.get("/sales/", params={"shift_id": admin_shift["id"]}, headers=cashier_headers)
    assert r.status_code == 403


def test_user_management(client, auth_headers, admin, cashier):
    payload = {"username": "tarde", "password": "tarde-pass", "full_name": "Turno Tarde"}
    assert client.post("/users/", json=payload, headers=auth_headers(cashier)).status_code == 403
    assert client.get("/users/", headers=auth_headers(cashier)).status_code == 403

    r = client.post("/users/", json=payload, headers=auth_headers(admin))
    assert r.status_code == 200
    created = r.json()
    assert created["role"] == "vendedor"
    assert "hashed_password" not in created

    assert client.post("/users/", json=payload, headers=auth_headers(admin)).status_code == 409
    r = client.post("/users/", json={**payload, "username": "otro", "role": "jefe"}, headers=auth_headers(admin))
    assert r.status_code == 400

    r = client.post("/auth/login", json={"username": "tarde", "password": "tarde-pass"})
    assert r.status_code == 200

    r = client.put(f"/users/{created['id']}", json={"full_name": "Turno Noche"}, headers=auth_headers(admin))
    assert r.json()["full_name"] == "Turno Noche"

    r = client.delete(f"/users/{created['id']}", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["active"] is False
    r = client.post("/auth/login", json={"username": "tarde", "password": "tarde-pass"})
    assert r.status_code == 401

    assert client.delete(f"/users/{admin.id}", headers=auth_headers(admin)).status_code == 400
    assert len(client.get("/users/", headers=auth_headers(admin)).json()) == 3


def test_closure_history(client, auth_headers, admin, cashier):
    headers = auth_headers(cashier)
    shift = client.post("/shifts/start", json={"opening_cash": 100}, headers=headers).json()
    client.post(
        "/cash/transactions",
        json={"shift_id": shift["id"], "type": "income", "category": "venta", "amount": 50,
              "payment_method": "efectivo"},
        headers=headers,
    )
    client.post(f"/shifts/{shift['id']}/close", json={"closing_cash": 160}, headers=headers)
    admin_shift = client.post("/shifts/start", json={"opening_cash": 0}, headers=auth_headers(admin)).json()
    client.post(f"/shifts/{admin_shift['id']}/close", json={"closing_cash": 0}, headers=auth_headers(admin))

    r = client.get("/shifts/closures", headers=headers)
    assert r.status_code == 200
    closures = r.json()
    assert [c["shift"]["id"] for c in closures] == [shift["id"]]
    assert closures[0]["expected_cash"] == 150.0
    assert closures[0]["closing_cash"] == 160.0
    assert closures[0]["difference"] == 10.0
    assert closures[0]["status"] == "surplus"
    assert closures[0]["reconciliation"]["balance_by_method"]["efectivo"] == 50.0

    assert len(client.get("/shifts/closures", headers=auth_headers(admin)).json()) == 2
