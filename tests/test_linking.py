"""Integration tests for linking requirement templates to businesses."""

from __future__ import annotations

import pytest
from fastapi import status
from sqlmodel import select

from app.models import BusinessRequirement, Necessity, RequirementTemplate
from app.services.linking import DuplicateLinkError, LinkingService
from tests.utils import auth_headers


def _link(client, admin, business_id, payload):
    return client.post(
        f"/api/v1/admin/businesses/{business_id}/requirements", json=payload, headers=auth_headers(admin)
    )


def test_linked_template_resolves_business_name(client, admin, acme, license_template, make_product):
    make_product("Filing Service", 150.0, template_id=license_template.id)

    response = _link(client, admin, acme.id, {"templateId": license_template.id})
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["description"] == "License to operate Acme"
    assert body["wasCreated"] is False
    assert body["source"] == "admin"
    assert body["productCount"] == 1

    listing = client.get(f"/api/v1/admin/businesses/{acme.id}/requirements", headers=auth_headers(admin)).json()
    assert len(listing) == 1
    assert listing[0]["linkId"] == body["linkId"]
    assert listing[0]["templateDescription"] == "License to operate Acme"
    assert listing[0]["necessity"] == "Required"


def test_override_is_per_business(client, admin, acme, beta, license_template):
    _link(client, admin, acme.id, {"templateId": license_template.id})
    beta_link = _link(client, admin, beta.id, {"templateId": license_template.id}).json()

    response = client.patch(
        f"/api/v1/admin/businesses/{beta.id}/requirements",
        json={"linkId": beta_link["linkId"], "descriptionOverride": "Custom text"},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["descriptionOverride"] == "Custom text"

    beta_rows = client.get(f"/api/v1/admin/businesses/{beta.id}/requirements", headers=auth_headers(admin)).json()
    acme_rows = client.get(f"/api/v1/admin/businesses/{acme.id}/requirements", headers=auth_headers(admin)).json()
    assert beta_rows[0]["description"] == "Custom text"
    assert acme_rows[0]["description"] == "License to operate Acme"


def test_template_edit_changes_non_overridden_links_on_next_read(client, admin, acme, license_template):
    _link(client, admin, acme.id, {"templateId": license_template.id})

    client.patch(
        f"/api/v1/requirements/{license_template.id}",
        json={"description": "Operating permit for [businessName]"},
        headers=auth_headers(admin),
    )

    rows = client.get(f"/api/v1/admin/businesses/{acme.id}/requirements", headers=auth_headers(admin)).json()
    assert rows[0]["description"] == "Operating permit for Acme"


def test_create_and_link_new_template(client, admin, acme, session):
    response = _link(
        client,
        admin,
        acme.id,
        {"name": "Fire Inspection", "description": "Inspect [businessName]", "category": "Safety", "necessity": "Optional"},
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["wasCreated"] is True
    assert body["description"] == "Inspect Acme"
    assert session.get(RequirementTemplate, body["templateId"]).name == "Fire Inspection"


def test_create_and_link_requires_fields(client, admin, acme):
    response = _link(client, admin, acme.id, {"name": "Fire Inspection"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_duplicate_link_returns_conflict_with_existing_id(client, admin, acme, license_template, session):
    first = _link(client, admin, acme.id, {"templateId": license_template.id}).json()

    response = _link(client, admin, acme.id, {"templateId": license_template.id})
    assert response.status_code == status.HTTP_409_CONFLICT
    body = response.json()
    assert body["duplicate"] is True
    assert body["linkId"] == first["linkId"]
    assert body["detail"] == '"Business License" is already added to Acme.'

    links = session.exec(select(BusinessRequirement)).all()
    assert len(links) == 1


def test_deprecated_template_cannot_gain_links(client, admin, acme, beta, license_template, session):
    _link(client, admin, acme.id, {"templateId": license_template.id})
    client.post(f"/api/v1/requirements/{license_template.id}/deprecate", headers=auth_headers(admin))

    response = _link(client, admin, beta.id, {"templateId": license_template.id})
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    links = session.exec(select(BusinessRequirement)).all()
    assert [link.business_id for link in links] == [acme.id]


def test_unknown_business_and_template_are_not_found(client, admin, acme):
    assert _link(client, admin, 999, {"templateId": 1}).status_code == status.HTTP_404_NOT_FOUND
    assert _link(client, admin, acme.id, {"templateId": 999}).status_code == status.HTTP_404_NOT_FOUND


def test_update_link_is_scoped_to_business(client, admin, acme, beta, license_template):
    link = _link(client, admin, acme.id, {"templateId": license_template.id}).json()

    response = client.patch(
        f"/api/v1/admin/businesses/{beta.id}/requirements",
        json={"linkId": link["linkId"], "isActive": False},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_update_link_leaves_absent_fields_untouched(client, admin, acme, license_template):
    link = _link(client, admin, acme.id, {"templateId": license_template.id}).json()
    url = f"/api/v1/admin/businesses/{acme.id}/requirements"

    client.patch(url, json={"linkId": link["linkId"], "descriptionOverride": "Custom"}, headers=auth_headers(admin))
    updated = client.patch(url, json={"linkId": link["linkId"], "displayOrder": 3}, headers=auth_headers(admin)).json()
    assert updated["descriptionOverride"] == "Custom"
    assert updated["displayOrder"] == 3
    assert updated["isActive"] is True

    cleared = client.patch(
        url, json={"linkId": link["linkId"], "descriptionOverride": None, "isActive": False}, headers=auth_headers(admin)
    ).json()
    assert cleared["descriptionOverride"] is None
    assert cleared["isActive"] is False
    assert cleared["displayOrder"] == 3


def test_update_link_requires_link_id(client, admin, acme):
    response = client.patch(
        f"/api/v1/admin/businesses/{acme.id}/requirements", json={"isActive": False}, headers=auth_headers(admin)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_business_links_follow_display_order(client, admin, acme, license_template, session):
    insurance = RequirementTemplate(name="Insurance", category="Legal", necessity=Necessity.REQUIRED)
    session.add(insurance)
    session.commit()

    first = _link(client, admin, acme.id, {"templateId": license_template.id}).json()
    second = _link(client, admin, acme.id, {"templateId": insurance.id}).json()
    client.patch(
        f"/api/v1/admin/businesses/{acme.id}/requirements",
        json={"linkId": first["linkId"], "displayOrder": 5},
        headers=auth_headers(admin),
    )

    rows = client.get(f"/api/v1/admin/businesses/{acme.id}/requirements", headers=auth_headers(admin)).json()
    assert [row["linkId"] for row in rows] == [second["linkId"], first["linkId"]]
    assert rows[1]["description"] == "License to operate Acme"
    assert rows[0]["description"] == ""


def test_public_requirements_hide_inactive_links(client, admin, acme, license_template):
    link = _link(client, admin, acme.id, {"templateId": license_template.id}).json()
    assert len(client.get("/api/v1/businesses/acme/requirements").json()) == 1

    client.patch(
        f"/api/v1/admin/businesses/{acme.id}/requirements",
        json={"linkId": link["linkId"], "isActive": False},
        headers=auth_headers(admin),
    )
    assert client.get("/api/v1/businesses/acme/requirements").json() == []


def test_unlink_keeps_template(client, admin, acme, license_template, session):
    link = _link(client, admin, acme.id, {"templateId": license_template.id}).json()

    response = client.request(
        "DELETE",
        f"/api/v1/admin/businesses/{acme.id}/requirements",
        json={"linkId": link["linkId"]},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == '"Business License" removed from "Acme"'
    assert session.exec(select(BusinessRequirement)).all() == []
    assert session.get(RequirementTemplate, license_template.id) is not None

    again = client.request(
        "DELETE",
        f"/api/v1/admin/businesses/{acme.id}/requirements",
        json={"linkId": link["linkId"]},
        headers=auth_headers(admin),
    )
    assert again.status_code == status.HTTP_404_NOT_FOUND


def test_unlink_by_template_and_business(client, admin, acme, license_template):
    _link(client, admin, acme.id, {"templateId": license_template.id})

    response = client.request(
        "DELETE",
        f"/api/v1/requirements/{license_template.id}/businesses",
        json={"businessId": acme.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == '"Business License" unlinked from "Acme"'


def test_bulk_link_reports_each_business(client, admin, acme, beta, license_template):
    _link(client, admin, acme.id, {"templateId": license_template.id})

    response = client.post(
        f"/api/v1/requirements/{license_template.id}/businesses",
        json={"businessIds": [acme.id, beta.id, 999]},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["summary"] == {"total": 3, "linked": 1, "duplicates": 1, "failed": 1}

    by_business = {result["businessId"]: result for result in body["results"]}
    assert by_business[acme.id]["success"] is False
    assert by_business[acme.id]["duplicate"] is True
    assert by_business[beta.id]["success"] is True
    assert by_business[beta.id]["linkId"]
    assert by_business[999]["reason"] == "Business not found"


def test_bulk_link_rejects_empty_and_deprecated(client, admin, beta, license_template):
    url = f"/api/v1/requirements/{license_template.id}/businesses"
    assert client.post(url, json={"businessIds": []}, headers=auth_headers(admin)).status_code == 400

    client.post(f"/api/v1/requirements/{license_template.id}/deprecate", headers=auth_headers(admin))
    assert client.post(url, json={"businessIds": [beta.id]}, headers=auth_headers(admin)).status_code == 400


def test_template_links_listed_in_creation_order(client, admin, acme, beta, license_template):
    _link(client, admin, beta.id, {"templateId": license_template.id})
    _link(client, admin, acme.id, {"templateId": license_template.id})

    rows = client.get(f"/api/v1/requirements/{license_template.id}/businesses", headers=auth_headers(admin)).json()
    assert [row["businessSlug"] for row in rows] == ["beta", "acme"]
    assert rows[1]["effectiveDescription"] == "License to operate Acme"


def test_linking_requires_admin(client, alice, acme, license_template):
    response = client.post(
        f"/api/v1/admin/businesses/{acme.id}/requirements",
        json={"templateId": license_template.id},
        headers=auth_headers(alice),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_lost_insert_race_reports_duplicate(session, acme, license_template, monkeypatch):
    service = LinkingService(session)
    existing = service.link_template(acme.id, template_id=license_template.id)

    # Simulate a concurrent request that checked before the winner committed
    original = service.find_link
    calls = {"count": 0}

    def stale_find(business_id, template_id):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return original(business_id, template_id)

    monkeypatch.setattr(service, "find_link", stale_find)

    with pytest.raises(DuplicateLinkError) as excinfo:
        service.link_template(acme.id, template_id=license_template.id)

    assert excinfo.value.status_code == 409
    assert excinfo.value.link_id == existing["linkId"]
