"""Researcher academic history, certifications and collaboration projects."""

import pytest
from sqlalchemy import func, select

from collabhub.models import AcademicHistory, Agreement, Certification, ResearcherProfile


@pytest.mark.asyncio
async def test_academic_history_crud(test_client, researcher, headers_for):
    headers = headers_for(researcher.id)

    created = await test_client.post(
        "/api/v1/researchers/me/academic",
        headers=headers,
        json={"degree": "PhD", "field": "Statistics", "institution": "UCL", "year": "2019"},
    )
    assert created.status_code == 201
    entry = created.json()
    assert entry["user_id"] == researcher.id
    assert entry["institution"] == "UCL"

    await test_client.post(
        "/api/v1/researchers/me/academic",
        headers=headers,
        json={"degree": "MSc", "institution": "LSE", "year": "2015"},
    )
    listed = await test_client.get("/api/v1/researchers/me/academic", headers=headers)
    assert listed.status_code == 200
    assert [e["degree"] for e in listed.json()] == ["PhD", "MSc"]

    updated = await test_client.put(
        f"/api/v1/researchers/me/academic/{entry['id']}",
        headers=headers,
        json={"field": "Biostatistics"},
    )
    assert updated.status_code == 200
    assert updated.json()["field"] == "Biostatistics"
    assert updated.json()["degree"] == "PhD"

    deleted = await test_client.delete(
        f"/api/v1/researchers/me/academic/{entry['id']}", headers=headers
    )
    assert deleted.status_code == 200
    listed = await test_client.get("/api/v1/researchers/me/academic", headers=headers)
    assert [e["degree"] for e in listed.json()] == ["MSc"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"institution": "UCL"},
        {"degree": "PhD"},
        {"degree": "  ", "institution": "UCL"},
        {"degree": "PhD", "institution": "UCL", "year": "y" * 51},
    ],
    ids=["no-degree", "no-institution", "blank-degree", "long-year"],
)
async def test_academic_history_validation(test_client, researcher, headers_for, payload):
    resp = await test_client.post(
        "/api/v1/researchers/me/academic", headers=headers_for(researcher.id), json=payload
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["kind"] == "ValidationError"


@pytest.mark.asyncio
async def test_certification_crud(test_client, researcher, headers_for):
    headers = headers_for(researcher.id)

    missing_issuer = await test_client.post(
        "/api/v1/researchers/me/certifications", headers=headers, json={"name": "CISSP"}
    )
    assert missing_issuer.status_code == 400

    created = await test_client.post(
        "/api/v1/researchers/me/certifications",
        headers=headers,
        json={"name": "CISSP", "issuer": "ISC2", "credential_id": "A-1"},
    )
    assert created.status_code == 201
    cert_id = created.json()["id"]

    updated = await test_client.put(
        f"/api/v1/researchers/me/certifications/{cert_id}",
        headers=headers,
        json={"year": "2022", "credential_id": ""},
    )
    assert updated.status_code == 200
    assert updated.json()["year"] == "2022"
    assert updated.json()["credential_id"] is None

    empty = await test_client.put(
        f"/api/v1/researchers/me/certifications/{cert_id}", headers=headers, json={}
    )
    assert empty.status_code == 400

    deleted = await test_client.delete(
        f"/api/v1/researchers/me/certifications/{cert_id}", headers=headers
    )
    assert deleted.status_code == 200
    listed = await test_client.get("/api/v1/researchers/me/certifications", headers=headers)
    assert listed.json() == []


@pytest.mark.asyncio
async def test_other_researchers_entries_are_not_found(
    test_client, researcher, user_factory, headers_for
):
    owner_headers = headers_for(researcher.id)
    intruder = await user_factory(role="researcher")
    intruder_headers = headers_for(intruder.id)

    cert = await test_client.post(
        "/api/v1/researchers/me/certifications",
        headers=owner_headers,
        json={"name": "CISSP", "issuer": "ISC2"},
    )
    cert_id = cert.json()["id"]

    edit = await test_client.put(
        f"/api/v1/researchers/me/certifications/{cert_id}",
        headers=intruder_headers,
        json={"name": "Forged"},
    )
    assert edit.status_code == 404
    assert edit.json()["detail"]["message"] == "Certification not found"

    remove = await test_client.delete(
        f"/api/v1/researchers/me/certifications/{cert_id}", headers=intruder_headers
    )
    assert remove.status_code == 404

    assert (
        await test_client.get("/api/v1/researchers/me/certifications", headers=intruder_headers)
    ).json() == []
    owned = await test_client.get(
        "/api/v1/researchers/me/certifications", headers=owner_headers
    )
    assert [c["name"] for c in owned.json()] == ["CISSP"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path", ["/me/academic", "/me/certifications", "/me/projects"]
)
async def test_credentials_are_researcher_only(test_client, nonprofit_headers, path):
    resp = await test_client.get(f"/api/v1/researchers{path}", headers=nonprofit_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["reason"] == "RoleNotPermitted"


@pytest.mark.asyncio
async def test_collaboration_projects_follow_agreements(
    test_client,
    db_session,
    researcher,
    headers_for,
    nonprofit,
    other_nonprofit,
    project_factory,
):
    _, org = nonprofit
    _, other_org = other_nonprofit
    researcher_id = researcher.id

    db_session.add(ResearcherProfile(user_id=researcher_id))
    await db_session.commit()
    db_session.add(Agreement(org_id=org.id, researcher_id=researcher_id, type="contract"))
    await db_session.commit()

    await project_factory(org, title="Live study", status="in_progress")
    await project_factory(org, title="Still drafting", status="draft")
    await project_factory(other_org, title="Someone else's", status="open")

    resp = await test_client.get(
        "/api/v1/researchers/me/projects", headers=headers_for(researcher_id)
    )
    assert resp.status_code == 200
    assert [p["title"] for p in resp.json()["projects"]] == ["Live study"]
    assert resp.json()["total_count"] == 1


@pytest.mark.asyncio
async def test_hard_delete_removes_credentials(
    test_client, admin_headers, researcher, headers_for, db_session
):
    user_id = researcher.id
    headers = headers_for(user_id)
    await test_client.post(
        "/api/v1/researchers/me/academic",
        headers=headers,
        json={"degree": "PhD", "institution": "UCL"},
    )
    await test_client.post(
        "/api/v1/researchers/me/certifications",
        headers=headers,
        json={"name": "CISSP", "issuer": "ISC2"},
    )

    resp = await test_client.delete(
        f"/api/v1/admin/users/{user_id}",
        headers=admin_headers,
        params={"confirmation": "DELETE"},
    )
    assert resp.status_code == 200

    for model in (AcademicHistory, Certification):
        count = (await db_session.execute(select(func.count()).select_from(model))).scalar()
        assert count == 0, model.__name__
