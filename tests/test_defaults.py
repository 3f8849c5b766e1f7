import json

import httpx

from tradesapp.domain.integrations.xero.defaults import (
    CASH_SALES_CONTACT_NAME,
    LABOUR_ITEM_CODE,
    MATERIALS_ITEM_CODE,
    sync_all,
    sync_contacts_to_local,
)
from tradesapp.models_xero import XeroContact, XeroItem

API = "/api.xro/2.0"


class FakeOrganisation:
    """Minimal in-memory Xero organisation for contacts and items"""

    def __init__(self, xero_stub):
        self.contacts = []
        self.items = {}
        xero_stub.on_call("GET", f"{API}/Contacts", self.find_contacts)
        xero_stub.on_call("POST", f"{API}/Contacts", self.create_contacts)
        xero_stub.on_call("POST", f"{API}/Items", self.create_items)
        for code in (LABOUR_ITEM_CODE, MATERIALS_ITEM_CODE):
            xero_stub.on_call("GET", f"{API}/Items/{code}", self.get_item)

    def find_contacts(self, request):
        where = request.url.params.get("where", "")
        matches = [c for c in self.contacts if where == f'Name=="{c["Name"]}"']
        return httpx.Response(200, json={"Contacts": matches})

    def create_contacts(self, request):
        contact = dict(json.loads(request.content)["Contacts"][0])
        contact["ContactID"] = f"contact-{len(self.contacts) + 1}"
        self.contacts.append(contact)
        return httpx.Response(200, json={"Contacts": [contact]})

    def get_item(self, request):
        code = request.url.path.rsplit("/", 1)[-1]
        if code not in self.items:
            return httpx.Response(404, json={"Message": "Not found"})
        return httpx.Response(200, json={"Items": [self.items[code]]})

    def create_items(self, request):
        item = dict(json.loads(request.content)["Items"][0])
        item["ItemID"] = f"item-{item['Code'].lower()}"
        self.items[item["Code"]] = item
        return httpx.Response(200, json={"Items": [item]})


def test_sync_twice_creates_each_default_once(db_session, run_with_context, connected_token, xero_stub, profile):
    org = FakeOrganisation(xero_stub)

    run_with_context(lambda db, ctx: sync_all(db, ctx, profile.default_labour_rate))
    run_with_context(lambda db, ctx: sync_all(db, ctx, profile.default_labour_rate))

    assert len(xero_stub.calls("POST", f"{API}/Contacts")) == 1
    assert len(xero_stub.calls("POST", f"{API}/Items")) == 2
    assert len(org.contacts) == 1

    contacts = db_session.query(XeroContact).filter(XeroContact.user_id == profile.id).all()
    assert [(c.xero_contact_id, c.name, c.is_default) for c in contacts] == [
        ("contact-1", CASH_SALES_CONTACT_NAME, True)
    ]
    items = db_session.query(XeroItem).filter(XeroItem.user_id == profile.id).all()
    assert len(items) == 2
    assert sum(i.is_default_labour for i in items) == 1
    assert sum(i.is_default_materials for i in items) == 1


def test_labour_item_created_with_profile_rate(run_with_context, connected_token, xero_stub, profile):
    org = FakeOrganisation(xero_stub)

    (contacts, items), _ = run_with_context(lambda db, ctx: sync_all(db, ctx, profile.default_labour_rate))

    labour = org.items[LABOUR_ITEM_CODE]
    assert labour["Name"] == "Building Labour"
    assert labour["IsSold"] is True
    assert labour["IsPurchased"] is False
    assert labour["SalesDetails"] == {"UnitPrice": 95.0}
    materials = org.items[MATERIALS_ITEM_CODE]
    assert materials["IsSold"] is True and materials["IsPurchased"] is True
    assert items.labour_item_id == "item-labour"
    assert items.materials_item_id == "item-materials"
    assert contacts.default_contact_id == "contact-1"


def test_existing_remote_contact_is_reused(run_with_context, connected_token, xero_stub):
    org = FakeOrganisation(xero_stub)
    org.contacts.append({"ContactID": "existing-cash", "Name": CASH_SALES_CONTACT_NAME, "EmailAddress": ""})

    result, _ = run_with_context(sync_contacts_to_local)

    assert result.default_contact_id == "existing-cash"
    assert xero_stub.calls("POST", f"{API}/Contacts") == []


def test_stale_default_flag_moves_to_new_contact(db_session, run_with_context, connected_token, xero_stub, profile):
    db_session.add(
        XeroContact(user_id=profile.id, xero_contact_id="old-cash", name="Old Cash Sales", is_default=True)
    )
    db_session.commit()
    FakeOrganisation(xero_stub)

    run_with_context(sync_contacts_to_local)

    db_session.expire_all()
    rows = {c.xero_contact_id: c.is_default for c in db_session.query(XeroContact).all()}
    assert rows == {"old-cash": False, "contact-1": True}


def test_existing_local_row_is_rewritten(db_session, run_with_context, connected_token, xero_stub, profile):
    db_session.add(
        XeroItem(
            user_id=profile.id,
            xero_item_id="item-labour",
            code="OLD",
            name="Stale name",
            is_default_labour=False,
        )
    )
    db_session.commit()
    org = FakeOrganisation(xero_stub)
    org.items[LABOUR_ITEM_CODE] = {"ItemID": "item-labour", "Code": LABOUR_ITEM_CODE, "Name": "Building Labour"}

    run_with_context(lambda db, ctx: sync_all(db, ctx, 85.0))

    db_session.expire_all()
    labour_rows = db_session.query(XeroItem).filter(XeroItem.xero_item_id == "item-labour").all()
    assert len(labour_rows) == 1
    assert labour_rows[0].code == LABOUR_ITEM_CODE
    assert labour_rows[0].name == "Building Labour"
    assert labour_rows[0].is_default_labour is True
    assert labour_rows[0].item_type == "labour"
