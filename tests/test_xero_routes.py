import json
from datetime import date, timedelta
from urllib.parse import parse_qs

from sqlalchemy import text

from tradesapp.models import Job, JobLabour, JobMaterial
from tradesapp.models_xero import XeroContact, XeroItem, XeroToken

API = "/api.xro/2.0"


def _seed_defaults(db_session, profile, labour_account=None):
    db_session.add_all(
        [
            XeroContact(user_id=profile.id, xero_contact_id="cash-1", name="Cash Sales", is_default=True),
            XeroItem(
                user_id=profile.id,
                xero_item_id="item-labour",
                code="LABOUR",
                name="Building Labour",
                sales_account_code=labour_account,
                item_type="labour",
                is_default_labour=True,
            ),
            XeroItem(
                user_id=profile.id,
                xero_item_id="item-materials",
                code="MATERIALS",
                name="Building Materials",
                is_purchased=True,
                item_type="materials",
                is_default_materials=True,
            ),
        ]
    )
    db_session.commit()


def _seed_job(db_session, profile, with_lines=True):
    job = Job(user_id=profile.id, title="Switchboard upgrade", description="Replace old board")
    db_session.add(job)
    db_session.commit()
    if with_lines:
        db_session.add_all(
            [
                JobLabour(job_id=job.id, user_id=profile.id, description="Install board", hours=3, rate=95, total=285),
                JobMaterial(
                    job_id=job.id,
                    user_id=profile.id,
                    name="RCBO",
                    supplier="Middys",
                    qty=4,
                    buy_price=50,
                    markup_pct=20,
                    sell_price=60,
                    line_total=240,
                ),
            ]
        )
        db_session.commit()
    return job


# ---------------------------------------------------------------------------
# token record
# ---------------------------------------------------------------------------


def test_get_token_when_not_configured(client):
    response = client.get("/api/xero/token")

    assert response.status_code == 200
    assert response.json() == {"token": None}


def test_create_token_then_duplicate_conflicts(client, db_session, profile):
    response = client.post("/api/xero/token", json={"client_id": "client-123", "client_secret": "supersecret"})

    assert response.status_code == 201
    token = response.json()["token"]
    assert token["client_id"] == "client-123"
    assert token["client_secret"] == "*******cret"
    assert token["connected"] is False
    assert "access_token" not in token and "refresh_token" not in token

    again = client.post("/api/xero/token", json={"client_id": "x", "client_secret": "y"})
    assert again.status_code == 409


def test_client_secret_is_encrypted_at_rest(client, db_session, profile):
    client.post("/api/xero/token", json={"client_id": "client-123", "client_secret": "supersecret"})

    raw = db_session.execute(text("SELECT client_secret FROM xero_tokens")).scalar_one()
    assert raw != "supersecret"
    assert db_session.query(XeroToken).one().client_secret == "supersecret"


def test_get_connected_token_hides_secrets(client, connected_token):
    token = client.get("/api/xero/token").json()["token"]

    assert token["connected"] is True
    assert token["tenant_name"] == "Sparky Co"
    assert "access-current" not in json.dumps(token)
    assert "secret-456" not in json.dumps(token)


def test_update_token_is_partial(client, db_session, connected_token):
    response = client.put("/api/xero/token", json={"tenant_id": "tenant-2", "tenant_name": "New Org"})

    assert response.status_code == 200
    db_session.expire_all()
    stored = db_session.get(XeroToken, connected_token.id)
    assert (stored.tenant_id, stored.tenant_name) == ("tenant-2", "New Org")
    assert stored.client_id == "client-123"
    assert stored.access_token == "access-current"


def test_update_missing_token_is_404(client):
    assert client.put("/api/xero/token", json={"scope": "x"}).status_code == 404


def test_delete_token_revokes_and_clears_cache(client, db_session, profile, connected_token, xero_stub):
    _seed_defaults(db_session, profile)
    xero_stub.on("POST", "/connect/revocation", status=200, json={})

    response = client.delete("/api/xero/token")

    assert response.status_code == 200
    revoke = xero_stub.calls("POST", "/connect/revocation")
    assert parse_qs(revoke[0].content.decode()) == {"token": ["refresh-current"]}
    db_session.expire_all()
    assert db_session.query(XeroToken).count() == 0
    assert db_session.query(XeroContact).count() == 0
    assert db_session.query(XeroItem).count() == 0


def test_delete_token_survives_failed_revocation(client, db_session, connected_token, xero_stub):
    xero_stub.on("POST", "/connect/revocation", status=500, text="boom")

    assert client.delete("/api/xero/token").status_code == 200
    db_session.expire_all()
    assert db_session.query(XeroToken).count() == 0


# ---------------------------------------------------------------------------
# sync routes and error mapping
# ---------------------------------------------------------------------------


def test_sync_without_connection_returns_not_connected(client, xero_stub):
    response = client.post("/api/xero/sync")

    assert response.status_code == 400
    assert response.json()["code"] == "not_connected"
    assert xero_stub.requests == []


def test_sync_with_rejected_refresh_returns_401(client, db_session, connected_token, xero_stub):
    connected_token.expires_at = connected_token.expires_at - timedelta(hours=2)
    db_session.commit()
    xero_stub.on("POST", "/connect/token", status=400, json={"error": "invalid_grant"})

    response = client.post("/api/xero/sync")

    assert response.status_code == 401
    assert response.json()["code"] == "refresh_failed"


def test_remote_error_maps_to_bad_gateway(client, connected_token, xero_stub):
    xero_stub.on("GET", f"{API}/Contacts", status=401, json={"Title": "Unauthorized", "Detail": "TokenExpired"})

    response = client.post("/api/customers/sync-xero")

    assert response.status_code == 502
    assert response.json() == {"detail": "Xero: TokenExpired", "code": "remote_api_error"}


def test_sync_route_reports_created_contact_and_items(client, db_session, profile, connected_token, xero_stub):
    xero_stub.on("GET", f"{API}/Contacts", json={"Contacts": [{"ContactID": "cash-1", "Name": "Cash Sales"}]})
    xero_stub.on("GET", f"{API}/Items/LABOUR", json={"Items": [{"ItemID": "item-labour", "Code": "LABOUR"}]})
    xero_stub.on("GET", f"{API}/Items/MATERIALS", status=404, json={"Message": "Not found"})
    xero_stub.on("POST", f"{API}/Items", json={"Items": [{"ItemID": "item-materials", "Code": "MATERIALS"}]})

    response = client.post("/api/xero/sync")

    assert response.status_code == 200
    assert response.json()["data"] == {
        "contacts_synced": 1,
        "default_contact_id": "cash-1",
        "items_synced": 2,
        "labour_item_id": "item-labour",
        "materials_item_id": "item-materials",
    }
    items = client.get("/api/xero/items").json()
    assert items["default_labour_item"]["xero_item_id"] == "item-labour"
    assert items["default_materials_item"]["xero_item_id"] == "item-materials"
    contacts = client.get("/api/xero/contacts").json()
    assert contacts["default_contact"]["xero_contact_id"] == "cash-1"


def test_customer_sync_route_response(client, connected_token, xero_stub):
    xero_stub.on("GET", f"{API}/Contacts", json={"Contacts": [{"ContactID": "E1", "Name": "Acme"}]})

    response = client.post("/api/customers/sync-xero")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Synced 1 customers from Xero",
        "created": 1,
        "updated": 0,
        "skipped": 0,
        "total": 1,
    }


# ---------------------------------------------------------------------------
# quotes
# ---------------------------------------------------------------------------


def test_create_quote_builds_lines_and_stores_reference(client, db_session, profile, connected_token, xero_stub):
    _seed_defaults(db_session, profile, labour_account="210")
    job = _seed_job(db_session, profile)
    xero_stub.on(
        "POST",
        f"{API}/Quotes",
        json={"Quotes": [{"QuoteID": "q-1", "QuoteNumber": "QU-0001", "Total": 627.0}]},
    )

    response = client.post("/api/xero/quotes", json={"jobId": job.id})

    assert response.status_code == 200
    assert response.json() == {"success": True, "quote_id": "q-1", "quote_number": "QU-0001", "total": 627.0}

    sent = json.loads(xero_stub.calls("POST", f"{API}/Quotes")[0].content)["Quotes"][0]
    assert sent["Contact"] == {"ContactID": "cash-1"}
    assert sent["LineItems"] == [
        {"ItemCode": "LABOUR", "Description": "Install board", "Quantity": 3.0, "UnitAmount": 95.0, "AccountCode": "210"},
        {"ItemCode": "MATERIALS", "Description": "RCBO (Middys)", "Quantity": 4.0, "UnitAmount": 60.0, "AccountCode": "200"},
    ]
    assert sent["Reference"] == "Job: Switchboard upgrade"
    assert sent["LineAmountTypes"] == "Exclusive"
    issued = date.fromisoformat(sent["Date"])
    assert date.fromisoformat(sent["ExpiryDate"]) == issued + timedelta(days=30)

    db_session.expire_all()
    stored = db_session.get(Job, job.id)
    assert (stored.xero_quote_id, stored.xero_quote_number) == ("q-1", "QU-0001")


def test_create_quote_requires_synced_defaults(client, db_session, profile, connected_token, xero_stub):
    job = _seed_job(db_session, profile)

    response = client.post("/api/xero/quotes", json={"jobId": job.id})

    assert response.status_code == 400
    assert "sync Xero data first" in response.json()["detail"]
    assert xero_stub.requests == []


def test_create_quote_for_unknown_job(client, connected_token):
    assert client.post("/api/xero/quotes", json={"jobId": "missing"}).status_code == 404


def test_create_quote_without_lines(client, db_session, profile, connected_token, xero_stub):
    _seed_defaults(db_session, profile)
    job = _seed_job(db_session, profile, with_lines=False)

    response = client.post("/api/xero/quotes", json={"jobId": job.id})

    assert response.status_code == 400
    assert xero_stub.requests == []
