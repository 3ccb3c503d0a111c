import pytest
from helpers import client, signup

QUESTIONNAIRE = {
    "invitee_name": "Grace Hopper",
    "invitation_reason": "Mentored half of our first-year members",
    "eligibility_details": "Regular speaker at our meetups",
}


async def _org(ac, owner):
    r = await ac.post("/organizations", headers=owner, json={"name": "Builders Guild", "slug": "builders-guild"})
    assert r.status_code == 201, r.text
    return r.json()["id"]


@pytest.mark.asyncio
async def test_direct_invitation_over_http():
    async with client() as ac:
        owner, _ = await signup(ac, "owner")
        invitee, _ = await signup(ac, "invitee")
        stranger, _ = await signup(ac, "stranger")
        invitee_email = (await ac.get("/auth/me", headers=invitee)).json()["email"]
        org_id = await _org(ac, owner)

        r = await ac.post(f"/organizations/{org_id}/invitations", headers=owner, json={"email": invitee_email, "role": "member"})
        assert r.status_code == 201, r.text
        issued = r.json()
        assert issued["mode"] == "direct"
        assert issued["invitation_url"].endswith(f"/invitations/{issued['code']}")

        # landing page works without auth
        r = await ac.get(f"/invitations/{issued['code']}")
        assert r.status_code == 200
        assert r.json()["organization_slug"] == "builders-guild"
        assert r.json()["is_expired"] is False

        r = await ac.post(f"/invitations/{issued['code']}/accept", headers=stranger)
        assert r.status_code == 403
        assert r.json()["error"] == "Forbidden"

        r = await ac.post(f"/invitations/{issued['code']}/accept", headers=invitee)
        assert r.status_code == 200, r.text
        assert r.json()["member_id"]

        r = await ac.get(f"/organizations/{org_id}/members", headers=invitee)
        assert len(r.json()) == 2

        r = await ac.post(f"/invitations/{issued['code']}/accept", headers=invitee)
        assert r.status_code == 409


@pytest.mark.asyncio
async def test_referral_invitation_over_http():
    async with client() as ac:
        owner, _ = await signup(ac, "owner")
        regular, _ = await signup(ac, "regular")
        friend, friend_id = await signup(ac, "friend")
        org_id = await _org(ac, owner)

        # bring `regular` in through a direct link first
        code = (await ac.post(f"/organizations/{org_id}/invitations", headers=owner, json={})).json()["code"]
        assert (await ac.post(f"/invitations/{code}/accept", headers=regular)).status_code == 200

        r = await ac.post(f"/organizations/{org_id}/invitations", headers=regular, json={})
        assert r.status_code == 422
        body = r.json()
        assert body["error"] == "ValidationFailed"
        assert len(body["errors"]) == 3

        r = await ac.post(f"/organizations/{org_id}/invitations", headers=regular, json={"questionnaire": QUESTIONNAIRE})
        assert r.status_code == 201, r.text
        issued = r.json()
        assert issued["mode"] == "referral"
        assert issued["invitation_url"].endswith(f"/orgs/builders-guild/apply?invited-code={issued['code']}")

        r = await ac.post(f"/invitations/{issued['code']}/accept", headers=friend)
        application_id = r.json()["application_id"]
        assert application_id

        r = await ac.get(f"/organizations/{org_id}/applications", headers=regular)
        assert r.status_code == 403
        r = await ac.get(f"/organizations/{org_id}/applications?status=pending", headers=owner)
        assert [a["id"] for a in r.json()] == [application_id]

        r = await ac.post(f"/organizations/{org_id}/applications/{application_id}/approve", headers=owner)
        assert r.status_code == 200
        assert r.json()["status"] == "approved"

        r = await ac.get(f"/organizations/{org_id}/members", headers=friend)
        assert friend_id in [m["user_id"] for m in r.json()]


@pytest.mark.asyncio
async def test_invitation_errors_over_http():
    async with client() as ac:
        owner, _ = await signup(ac, "owner")
        outsider, _ = await signup(ac, "outsider")
        org_id = await _org(ac, owner)

        r = await ac.post(f"/organizations/{org_id}/invitations", headers=outsider, json={})
        assert r.status_code == 403
        assert r.json()["error"] == "NotAMember"

        r = await ac.get("/invitations/nope0000nope0000")
        assert r.status_code == 404
        assert r.json()["error"] == "InvitationNotFound"

        code = (await ac.post(f"/organizations/{org_id}/invitations", headers=owner, json={})).json()["code"]
        r = await ac.post(f"/invitations/{code}/cancel", headers=outsider)
        assert r.status_code == 403
        r = await ac.post(f"/invitations/{code}/cancel", headers=owner)
        assert r.status_code == 200
        assert r.json()["status"] == "canceled"

        r = await ac.get(f"/organizations/{org_id}/invitations", headers=owner)
        assert [i["status"] for i in r.json()] == ["canceled"]
