"""
Tests for organization endpoints: documents, analysis, knowledge base, team, downloads
"""
import pytest

from finsight.infrastructure.ai_gateway.client import AIGatewayError


@pytest.fixture
def analyst_headers(analyst_member, auth_headers):
    return auth_headers(*analyst_member)


@pytest.fixture
def admin_headers(admin_member, auth_headers):
    return auth_headers(*admin_member)


@pytest.fixture
def outsider_headers(db_session, auth_headers):
    from conftest import add_member
    from finsight.infrastructure.db.models import Organization

    org = Organization(name="Rival Bank", type="BANK")
    db_session.add(org)
    db_session.commit()
    return auth_headers(*add_member(db_session, org, "analyst@rival.example", "ANALYST"))


def _upload(client, headers, *names, document_type="FINANCIAL_REPORT"):
    files = [("files", (name, b"%PDF-1.4 body", "application/octet-stream")) for name in names]
    return client.post("/api/documents", headers=headers, files=files, data={"documentType": document_type})


# ============================================================================
# Documents
# ============================================================================


class TestDocumentsApi:
    def test_multipart_upload_and_list(self, client, analyst_headers):
        response = _upload(client, analyst_headers, "q1.pdf", "q2.pdf")

        assert response.status_code == 201
        assert response.json()["message"] == "2 document(s) uploaded successfully"

        listing = client.get("/api/documents", headers=analyst_headers, params={"type": "FINANCIAL_REPORT"})
        assert listing.json()["data"]["pagination"]["total"] == 2
        other_type = client.get("/api/documents", headers=analyst_headers, params={"type": "LOAN_APPLICATION"})
        assert other_type.json()["data"]["documents"] == []

    def test_bad_extension(self, client, analyst_headers):
        response = _upload(client, analyst_headers, "virus.exe")
        assert response.status_code == 400
        assert "Invalid file type" in response.json()["error"]

    def test_customer_is_forbidden(self, client, customer_user, auth_headers):
        response = _upload(client, auth_headers(customer_user), "q1.pdf")
        assert response.status_code == 403

    def test_other_organization_cannot_see_document(self, client, analyst_headers, outsider_headers):
        doc_id = _upload(client, analyst_headers, "q1.pdf").json()["data"]["documents"][0]["id"]

        assert client.get(f"/api/documents/{doc_id}", headers=analyst_headers).status_code == 200
        hidden = client.get(f"/api/documents/{doc_id}", headers=outsider_headers)
        assert hidden.status_code == 404
        assert client.delete(f"/api/documents/{doc_id}", headers=outsider_headers).status_code == 404

    def test_download_authorization(self, client, analyst_headers, outsider_headers):
        doc = _upload(client, analyst_headers, "q1.pdf").json()["data"]["documents"][0]

        mine = client.get(doc["storageUrl"], headers=analyst_headers)
        assert mine.status_code == 200
        assert mine.content == b"%PDF-1.4 body"

        assert client.get(doc["storageUrl"], headers=outsider_headers).status_code == 404
        assert client.get(doc["storageUrl"]).status_code == 401


# ============================================================================
# Analysis
# ============================================================================


class TestAnalysisApi:
    def test_analysis_round_trip(self, client, analyst_headers, gateway):
        gateway.analyze_document.return_value = {"aiSummary": "Solid", "confidenceScore": 0.8}
        doc_id = _upload(client, analyst_headers, "q1.pdf").json()["data"]["documents"][0]["id"]

        started = client.post("/api/ai/analyze-document", headers=analyst_headers, json={
            "documentId": doc_id, "analysisType": "INVESTMENT_ANALYSIS",
        })
        assert started.status_code == 202
        assert started.json()["data"]["estimatedTimeMinutes"] == 2

        status = client.get("/api/ai/analyze-document", headers=analyst_headers, params={"documentId": doc_id})
        data = status.json()["data"]
        assert data["status"] == "COMPLETED"
        assert data["analysisResult"]["aiSummary"] == "Solid"

        again = client.post("/api/ai/analyze-document", headers=analyst_headers, json={
            "documentId": doc_id, "analysisType": "INVESTMENT_ANALYSIS",
        })
        assert again.status_code == 409

    def test_analysis_failure_reports_error(self, client, analyst_headers, gateway):
        gateway.analyze_document.side_effect = AIGatewayError("AI service timed out")
        doc_id = _upload(client, analyst_headers, "q1.pdf").json()["data"]["documents"][0]["id"]

        client.post("/api/ai/analyze-document", headers=analyst_headers, json={
            "documentId": doc_id, "analysisType": "LOAN_RISK_ASSESSMENT",
        })
        status = client.get("/api/ai/analyze-document", headers=analyst_headers, params={"documentId": doc_id})

        assert status.json()["data"] == {"documentId": doc_id, "status": "ERROR"}


# ============================================================================
# Chat
# ============================================================================


def test_chat_and_sessions(client, analyst_headers, outsider_headers, gateway):
    gateway.chat.return_value = {"response": "Diversify.", "confidence": 0.7}

    first = client.post("/api/ai/chat", headers=analyst_headers, json={"message": "How should we allocate?"})
    assert first.status_code == 200
    session_id = first.json()["data"]["sessionId"]
    assert first.json()["meta"]["isNewSession"] is True

    history = client.get("/api/ai/chat", headers=analyst_headers, params={"sessionId": session_id})
    assert len(history.json()["data"]["conversationHistory"]) == 2

    renamed = client.put("/api/ai/sessions", headers=analyst_headers, json={
        "sessionId": session_id, "sessionTitle": "Allocation",
    })
    assert renamed.json()["data"]["sessionTitle"] == "Allocation"

    listing = client.get("/api/ai/sessions", headers=analyst_headers).json()["data"]
    assert listing["summary"] == {"totalSessions": 1, "totalMessages": 2}

    stolen = client.post("/api/ai/chat", headers=outsider_headers, json={"message": "hi", "sessionId": session_id})
    assert stolen.status_code == 404

    assert client.delete("/api/ai/sessions", headers=analyst_headers, params={"sessionId": session_id}).status_code == 200
    assert client.get("/api/ai/chat", headers=analyst_headers, params={"sessionId": session_id}).status_code == 404


def test_chat_requires_message(client, analyst_headers, gateway):
    response = client.post("/api/ai/chat", headers=analyst_headers, json={"message": "  "})
    assert response.status_code == 400
    gateway.chat.assert_not_called()


# ============================================================================
# Knowledge base and team
# ============================================================================


def test_knowledge_base(client, admin_headers, analyst_headers):
    files = [("files", ("basel.pdf", b"rules", "application/pdf"))]
    uploaded = client.post(
        "/api/knowledge-base", headers=admin_headers, files=files, data={"category": "REGULATORY_STANDARD"},
    )
    assert uploaded.status_code == 201
    doc_id = uploaded.json()["data"]["documents"][0]["id"]

    denied = client.post(
        "/api/knowledge-base", headers=analyst_headers, files=files, data={"category": "REGULATORY_STANDARD"},
    )
    assert denied.status_code == 403

    assert len(client.get("/api/knowledge-base", headers=analyst_headers).json()["data"]) == 1
    assert client.delete("/api/knowledge-base", headers=admin_headers, params={"id": doc_id}).status_code == 200
    assert client.get("/api/knowledge-base", headers=analyst_headers).json()["data"] == []


def test_team_management(client, db_session, admin_headers, analyst_member):
    from finsight.infrastructure.db.models import User

    added = client.post("/api/team", headers=admin_headers, json={
        "full_name": "Rita Risk", "email": "rita@acme.example", "password": "secret1", "role": "RISK_MANAGER",
    })
    assert added.status_code == 201
    rita_id = added.json()["data"]["id"]

    team = client.get("/api/team", headers=admin_headers).json()["data"]
    assert team["summary"]["totalMembers"] == 3

    analyst, _ = analyst_member
    deactivated = client.put(f"/api/team/{analyst.id}", headers=admin_headers, json={"is_active": False})
    assert deactivated.json()["data"]["is_active"] is False
    db_session.expire_all()
    assert db_session.get(User, analyst.id).jwt_version == 2

    assert client.delete(f"/api/team/{rita_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/team/{rita_id}", headers=admin_headers).status_code == 404


def test_deactivated_member_token_stops_working(client, db_session, admin_headers, analyst_member, auth_headers):
    analyst, membership = analyst_member
    analyst_headers = auth_headers(analyst, membership)

    client.put(f"/api/team/{analyst.id}", headers=admin_headers, json={"is_active": False})

    response = client.get("/api/documents", headers=analyst_headers)
    assert response.status_code == 401
    assert response.json()["code"] == "token_revoked"
