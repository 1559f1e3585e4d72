"""
API tests through the Flask test client.

Covers authentication, role checks, salesman invoice visibility, settings,
backup download/validate and the streamed restore.
"""

import json

from conftest import auth_headers


INVOICE = {
    "customerName": "Acme Fire",
    "transactionType": "Service Order",
    "shippingCost": 5,
    "items": [{"description": "Annual inspection", "qty": 2, "unitPrice": 10, "taxable": True}],
}


# =============================================================================
# HEALTH / AUTH
# =============================================================================


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["primary_store"]["status"] == "healthy"
    assert body["checks"]["local_store"]["status"] == "healthy"


def test_login_and_me(client, office_headers):
    response = client.get('/api/auth/me', headers=office_headers)
    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["id"] == "office1"
    assert user["role"] == "office"
    assert user["fixed"] is True


def test_admin_account_has_admin_scope(client, admin_headers):
    user = client.get('/api/auth/me', headers=admin_headers).get_json()["user"]
    assert user["isAdmin"] is True


def test_bad_password_rejected(client):
    response = client.post('/api/auth/login', json={'username': 'ffoffice1', 'password': 'wrong'})
    assert response.status_code == 401


def test_missing_and_invalid_token(client):
    assert client.get('/api/invoices').status_code == 401
    assert client.get('/api/invoices', headers=auth_headers('not-a-token')).status_code == 401


# =============================================================================
# INVOICES
# =============================================================================


def test_office_creates_invoice_with_server_totals(client, office_headers):
    response = client.post('/api/invoices', headers=office_headers, json={**INVOICE, "grandTotal": 1})
    assert response.status_code == 201
    invoice = response.get_json()["invoice"]
    assert invoice["grandTotal"] == 26.6
    assert invoice["salesRep"] == "Office Administrator"


def test_invalid_invoice_is_400(client, office_headers):
    response = client.post('/api/invoices', headers=office_headers, json={"items": [{"qty": -1}]})
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_salesman_sees_only_own_invoices(client, office_headers, salesman_headers):
    other = client.post('/api/invoices', headers=office_headers, json={**INVOICE, "salesRep": "Mary Jones"}).get_json()["invoice"]
    mine = client.post('/api/invoices', headers=salesman_headers, json={**INVOICE, "salesRep": "Mary Jones"}).get_json()["invoice"]
    assert mine["salesRep"] == "John Smith"

    listing = client.get('/api/invoices', headers=salesman_headers).get_json()
    assert [inv["id"] for inv in listing["items"]] == [mine["id"]]

    assert client.get(f'/api/invoices/{other["id"]}', headers=salesman_headers).status_code == 404
    assert client.get(f'/api/invoices/{mine["id"]}', headers=salesman_headers).status_code == 200

    office_listing = client.get('/api/invoices', headers=office_headers).get_json()
    assert office_listing["count"] == 2


def test_salesman_cannot_edit_archived_or_delete(client, office_headers, salesman_headers):
    invoice = client.post('/api/invoices', headers=salesman_headers, json=INVOICE).get_json()["invoice"]

    assert client.delete(f'/api/invoices/{invoice["id"]}', headers=salesman_headers).status_code == 403
    assert client.post(f'/api/invoices/{invoice["id"]}/archive', headers=salesman_headers).status_code == 403

    archived = client.post(f'/api/invoices/{invoice["id"]}/archive', headers=office_headers)
    assert archived.get_json()["invoice"]["archived"] is True

    response = client.patch(f'/api/invoices/{invoice["id"]}', headers=salesman_headers, json={"poNumber": "PO-1"})
    assert response.status_code == 403


def test_update_and_status(client, office_headers):
    invoice = client.post('/api/invoices', headers=office_headers, json=INVOICE).get_json()["invoice"]

    response = client.patch(f'/api/invoices/{invoice["id"]}', headers=office_headers, json={"shippingCost": 0})
    assert response.get_json()["invoice"]["grandTotal"] == 21.6

    response = client.patch(f'/api/invoices/{invoice["id"]}/status', headers=office_headers, json={"status": "completed"})
    assert response.get_json()["invoice"]["status"] == "completed"

    response = client.patch(f'/api/invoices/{invoice["id"]}/status', headers=office_headers, json={"status": "lost"})
    assert response.status_code == 400


def test_missing_invoice_is_404(client, office_headers):
    assert client.get('/api/invoices/nope', headers=office_headers).status_code == 404


# =============================================================================
# USERS / SETTINGS / CUSTOMERS
# =============================================================================


def test_users_are_office_only(client, salesman_headers):
    assert client.get('/api/users', headers=salesman_headers).status_code == 403


def test_user_listing_hides_credentials(client, office_headers, salesman):
    body = client.get('/api/users', headers=office_headers).get_json()
    assert body["count"] == 1
    assert "passwordHash" not in body["items"][0]
    assert {account["username"] for account in body["fixed"]} == {"ffoffice1", "itadmin"}


def test_fixed_accounts_cannot_be_deleted(client, office_headers):
    assert client.delete('/api/users/office1', headers=office_headers).status_code == 403


def test_duplicate_username_conflict(client, office_headers, salesman):
    response = client.post('/api/users', headers=office_headers, json={
        'username': 'jsmith', 'name': 'Another John', 'password': 'password1',
    })
    assert response.status_code == 409


def test_settings_update(client, office_headers, salesman_headers):
    assert client.put('/api/settings', headers=salesman_headers, json={"taxRate": 5}).status_code == 403

    response = client.put('/api/settings', headers=office_headers, json={"taxRate": 6.5})
    assert response.get_json()["settings"]["taxRate"] == 6.5
    assert client.put('/api/settings', headers=office_headers, json={"taxRate": 101}).status_code == 400

    invoice = client.post('/api/invoices', headers=office_headers, json=INVOICE).get_json()["invoice"]
    assert invoice["taxRate"] == 6.5


def test_office_info(client, salesman_headers):
    info = client.get('/api/office-info', headers=salesman_headers).get_json()["officeInfo"]
    assert info["companyName"] == "Fire Force"


def test_customer_crud(client, office_headers):
    created = client.post('/api/customers', headers=office_headers, json={"name": "Acme", "email": "ap@acme.com"})
    assert created.status_code == 201
    customer = created.get_json()["customer"]

    found = client.get('/api/customers?q=acme', headers=office_headers).get_json()
    assert found["count"] == 1

    updated = client.patch(f'/api/customers/{customer["id"]}', headers=office_headers, json={"phone": "330-555-0100"})
    assert updated.get_json()["customer"]["phone"] == "330-555-0100"

    assert client.delete(f'/api/customers/{customer["id"]}', headers=office_headers).status_code == 200
    assert client.get(f'/api/customers/{customer["id"]}', headers=office_headers).status_code == 404


def test_office_stats(client, office_headers):
    client.post('/api/invoices', headers=office_headers, json=INVOICE)
    stats = client.get('/api/stats/office', headers=office_headers).get_json()
    assert stats["totalInvoices"] == 1
    assert stats["totalRevenue"] == 26.6


# =============================================================================
# BACKUPS
# =============================================================================


def test_backup_download_is_redacted(client, office_headers, salesman):
    response = client.post('/api/backups', headers=office_headers, json={})
    assert response.status_code == 200
    assert response.headers["Content-Disposition"].startswith('attachment; filename="fireforce_backup_')

    snapshot = json.loads(response.data)
    assert snapshot["data"]["users"][0]["password"] == "***ENCRYPTED***"
    assert snapshot["data"]["officeInfo"]["password"] == "***ENCRYPTED***"
    assert snapshot["metadata"]["fileSize"] == len(response.data)

    history = client.get('/api/backups/history', headers=office_headers).get_json()
    assert history["count"] == 1


def test_backups_are_office_only(client, salesman_headers):
    assert client.post('/api/backups', headers=salesman_headers, json={}).status_code == 403


def test_validate_endpoint(client, office_headers):
    backup = client.post('/api/backups', headers=office_headers, json={}).data
    report = client.post('/api/backups/validate', headers=office_headers, data=backup).get_json()
    assert report["isValid"] is True

    report = client.post('/api/backups/validate', headers=office_headers, data=b'{"version": "1.0"}').get_json()
    assert report["isValid"] is False
    assert "Missing required field: data" in report["details"]["errors"]

    assert client.post('/api/backups/validate', headers=office_headers, data=b'not json').status_code == 400


def test_restore_requires_confirmation(client, office_headers):
    backup = client.post('/api/backups', headers=office_headers, json={}).data
    assert client.post('/api/backups/restore', headers=office_headers, data=backup).status_code == 400


def test_restore_streams_progress(client, office_headers):
    customer = client.post('/api/customers', headers=office_headers, json={"name": "Acme"}).get_json()["customer"]
    backup = client.post('/api/backups', headers=office_headers, json={}).data
    client.delete(f'/api/customers/{customer["id"]}', headers=office_headers)
    client.post('/api/customers', headers=office_headers, json={"name": "Walk-in"})

    response = client.post('/api/backups/restore?confirm=true', headers=office_headers, data=backup)
    assert response.status_code == 200
    states = [json.loads(line) for line in response.data.decode().splitlines() if line]
    assert states[0]["status"] == "reading"
    assert states[-1]["status"] == "completed"
    assert states[-1]["progress"] == 100

    names = [c["name"] for c in client.get('/api/customers', headers=office_headers).get_json()["items"]]
    assert names == ["Acme"]


def test_auto_backup_toggle_and_stats(client, office_headers):
    response = client.put('/api/backups/auto', headers=office_headers, json={"enabled": True})
    assert response.get_json() == {"autoBackupEnabled": True}
    stats = client.get('/api/backups/stats', headers=office_headers).get_json()
    assert stats["autoBackupEnabled"] is True
    assert stats["backupDue"] is True


def test_export_collection(client, office_headers):
    response = client.get('/api/exports/customers', headers=office_headers)
    assert response.status_code == 200
    assert json.loads(response.data)["dataType"] == "customers"
    assert client.get('/api/exports/settings', headers=office_headers).status_code == 400
