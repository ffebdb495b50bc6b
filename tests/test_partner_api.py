from app.models.account import Account


def create_account(session, email, full_name=None):
    account = Account(email=email, full_name=full_name)
    session.add(account)
    session.commit()
    session.refresh(account)
    return account


def test_request_and_accept(client, session, auth_headers, api):
    a = create_account(session, "a@x.com", "Alice")
    b = create_account(session, "b@x.com", "Bob")

    resp = client.post(
        f"{api}/partner/request",
        headers=auth_headers(a),
        json={"partnerEmail": "b@x.com"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Partner request sent successfully"
    assert body["status"]["outgoingRequest"]["email"] == "b@x.com"
    assert body["status"]["hasPendingRequest"] is True

    resp = client.get(f"{api}/partner/status", headers=auth_headers(b))
    assert resp.status_code == 200
    assert resp.json()["incomingRequest"]["name"] == "Alice"
    assert resp.json()["state"] == "REQUEST_RECEIVED"

    resp = client.post(f"{api}/partner/accept", headers=auth_headers(b))
    assert resp.status_code == 200
    status = resp.json()["status"]
    assert status["hasPartner"] is True
    assert status["currentPartner"]["id"] == a.id
    assert status["incomingRequest"] is None

    session.refresh(a)
    session.refresh(b)
    assert a.partner_id == b.id
    assert b.partner_id == a.id


def test_request_error_mapping(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    b = create_account(session, "b@x.com")
    c = create_account(session, "c@x.com")

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "a@x.com"}
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_TARGET"

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "z@x.com"}
    )
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "TARGET_NOT_FOUND"

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "b@x.com"}
    )
    assert resp.status_code == 200

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "c@x.com"}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "REQUEST_ALREADY_PENDING"

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(c), json={"partnerEmail": "b@x.com"}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "TARGET_REQUEST_PENDING"


def test_request_requires_valid_email(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "not-an-email"}
    )
    assert resp.status_code == 422


def test_mutual_request_links(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    b = create_account(session, "b@x.com")

    client.post(f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "b@x.com"})
    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(b), json={"partnerEmail": "a@x.com"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"]["state"] == "LINKED"
    assert resp.json()["status"]["hasPendingRequest"] is False


def test_reject_and_cancel(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    b = create_account(session, "b@x.com")

    client.post(f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "b@x.com"})
    resp = client.post(f"{api}/partner/reject", headers=auth_headers(b))
    assert resp.status_code == 200

    resp = client.post(f"{api}/partner/reject", headers=auth_headers(b))
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NO_PENDING_REQUEST"

    client.post(f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "b@x.com"})
    resp = client.delete(f"{api}/partner/request", headers=auth_headers(a))
    assert resp.status_code == 200
    assert resp.json()["status"]["outgoingRequest"] is None

    resp = client.delete(f"{api}/partner/request", headers=auth_headers(a))
    assert resp.status_code == 400

    session.refresh(b)
    assert b.partner_request_received_from is None


def test_unlink(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    b = create_account(session, "b@x.com")

    resp = client.delete(f"{api}/partner", headers=auth_headers(a))
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NOT_LINKED"

    # Manually link
    a.partner_id = b.id
    b.partner_id = a.id
    session.add(a)
    session.add(b)
    session.commit()

    resp = client.delete(f"{api}/partner", headers=auth_headers(a))
    assert resp.status_code == 200
    assert resp.json()["message"] == "Successfully unlinked from partner"

    session.refresh(a)
    session.refresh(b)
    assert a.partner_id is None
    assert b.partner_id is None


def test_already_linked_conflict(client, session, auth_headers, api):
    a = create_account(session, "a@x.com")
    b = create_account(session, "b@x.com")
    c = create_account(session, "c@x.com")
    a.partner_id = b.id
    b.partner_id = a.id
    session.add(a)
    session.add(b)
    session.commit()

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(a), json={"partnerEmail": "c@x.com"}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ALREADY_LINKED"

    resp = client.post(
        f"{api}/partner/request", headers=auth_headers(c), json={"partnerEmail": "a@x.com"}
    )
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "TARGET_ALREADY_LINKED"


def test_requires_authentication(client, api):
    resp = client.get(f"{api}/partner/status")
    assert resp.status_code == 401

    resp = client.get(f"{api}/partner/status", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 403
