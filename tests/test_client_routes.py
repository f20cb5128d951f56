from abby_api.domain.certifications.evaluator import ensure_default_certifications
from abby_api.domain.sessions import service as session_service_module
from abby_api.models import ChatMessage, QuizResult
from abby_api.services.ai_chat import FALLBACK_REPLY


def start_ai_session(client, headers, topic="Exam nerves"):
    response = client.post("/api/client/sessions/ai", json={"topic": topic}, headers=headers)
    assert response.status_code == 201
    return response.json()["session"]


def test_request_human_session_without_doctor(client, client_user, auth_headers):
    response = client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "2030-03-01", "preferredTime": "14:00", "reason": "Panic attacks"},
        headers=auth_headers(client_user),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["needsApproval"] is True
    assert body["session"]["status"] == "pending"
    assert body["session"]["needsAssignment"] is True
    assert body["session"]["topic"] == "Panic attacks"


def test_request_session_missing_fields(client, client_user, auth_headers):
    response = client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "2030-03-01"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Preferred date, time, and reason are required"}


def test_request_session_bad_date(client, client_user, auth_headers):
    response = client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "03/01/2030", "preferredTime": "14:00", "reason": "Stress"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400


def test_booked_ai_session_can_be_started_chatted_and_completed(client, client_user, auth_headers, monkeypatch):
    async def fake_reply(message, history=None, **kwargs):
        return "Let's breathe together."

    monkeypatch.setattr(session_service_module, "generate_ai_reply", fake_reply)
    headers = auth_headers(client_user)
    booked = client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "2030-03-01", "preferredTime": "09:00", "reason": "Exam nerves", "sessionType": "ai"},
        headers=headers,
    ).json()["session"]
    assert booked["status"] == "scheduled"
    base = f"/api/client/sessions/{booked['id']}"

    started = client.post(f"{base}/start", headers=headers)
    assert started.status_code == 200
    assert started.json()["session"]["status"] == "in-progress"
    assert started.json()["session"]["startedAt"] is not None

    chat = client.post(f"{base}/messages", json={"content": "I feel tense"}, headers=headers)
    assert chat.json()["aiMessage"]["content"] == "Let's breathe together."

    completed = client.post(f"{base}/complete", json={"quizScore": 90}, headers=headers)
    assert completed.status_code == 200
    assert completed.json()["session"]["status"] == "completed"
    assert client.get("/api/client/dashboard", headers=headers).json()["stats"]["completedSessions"] == 1

    again = client.post(f"{base}/start", headers=headers)
    assert again.status_code == 400
    assert again.json() == {"error": "Cannot move session from 'completed' to 'in-progress'"}


def test_client_cannot_start_human_session(client, client_user, doctor_user, auth_headers):
    headers = auth_headers(client_user)
    booked = client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "2030-03-01", "preferredTime": "09:00", "reason": "Stress", "doctorId": doctor_user.id},
        headers=headers,
    ).json()["session"]

    response = client.post(f"/api/client/sessions/{booked['id']}/start", headers=headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Only AI sessions can be started by the client"}


def test_list_sessions_filters(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    start_ai_session(client, headers)
    client.post(
        "/api/client/sessions/request",
        json={"preferredDate": "2030-03-01", "preferredTime": "14:00", "reason": "Stress"},
        headers=headers,
    )

    all_sessions = client.get("/api/client/sessions", headers=headers).json()["sessions"]
    assert len(all_sessions) == 2

    ai_sessions = client.get("/api/client/sessions", params={"type": "ai"}, headers=headers).json()["sessions"]
    assert [s["type"] for s in ai_sessions] == ["ai"]

    pending = client.get("/api/client/sessions", params={"status": "pending"}, headers=headers).json()["sessions"]
    assert [s["status"] for s in pending] == ["pending"]


def test_clients_cannot_see_each_others_sessions(client, client_user, make_user, auth_headers):
    session = start_ai_session(client, auth_headers(client_user))
    other = make_user("client")

    response = client.get(f"/api/client/sessions/{session['id']}/messages", headers=auth_headers(other))
    assert response.status_code == 404


def test_ai_chat_round_trip(client, db, client_user, auth_headers, monkeypatch):
    async def fake_reply(message, history=None, **kwargs):
        return f"Echo: {message} ({len(history or [])} earlier)"

    monkeypatch.setattr(session_service_module, "generate_ai_reply", fake_reply)
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)

    first = client.post(
        f"/api/client/sessions/{session['id']}/messages", json={"content": "Hello"}, headers=headers
    )
    assert first.status_code == 200
    assert first.json()["aiMessage"]["content"] == "Echo: Hello (0 earlier)"

    second = client.post(
        f"/api/client/sessions/{session['id']}/messages", json={"content": "Still here"}, headers=headers
    )
    assert second.json()["aiMessage"]["content"] == "Echo: Still here (2 earlier)"

    messages = client.get(f"/api/client/sessions/{session['id']}/messages", headers=headers).json()["messages"]
    assert [m["sender"] for m in messages] == ["user", "ai", "user", "ai"]


def test_ai_chat_without_api_key_uses_fallback(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)

    response = client.post(
        f"/api/client/sessions/{session['id']}/messages", json={"content": "Hi"}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["aiMessage"]["content"] == FALLBACK_REPLY


def test_messages_rejected_after_session_ends(client, db, client_user, auth_headers):
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)
    client.post(f"/api/client/sessions/{session['id']}/complete", json={"skipped": True}, headers=headers)

    response = client.post(
        f"/api/client/sessions/{session['id']}/messages", json={"content": "Hello?"}, headers=headers
    )
    assert response.status_code == 400
    assert db.query(ChatMessage).count() == 0


def test_skip_completion(client, db, client_user, auth_headers):
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)

    response = client.post(
        f"/api/client/sessions/{session['id']}/complete", json={"skipped": True}, headers=headers
    )

    assert response.status_code == 200
    assert response.json()["session"]["status"] == "cancelled"
    assert db.query(QuizResult).count() == 0
    progress = client.get("/api/client/dashboard", headers=headers).json()["stats"]
    assert progress["completedSessions"] == 0


def test_invalid_rating_is_rejected(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)
    response = client.post(
        f"/api/client/sessions/{session['id']}/complete", json={"quizScore": 90, "rating": 9}, headers=headers
    )
    assert response.status_code == 400


def test_two_passing_sessions_unlock_first_certification(client, db, client_user, auth_headers):
    ensure_default_certifications(db)
    db.commit()
    headers = auth_headers(client_user)

    for _ in range(2):
        session = start_ai_session(client, headers)
        response = client.post(
            f"/api/client/sessions/{session['id']}/complete", json={"quizScore": 85, "rating": 4}, headers=headers
        )
        assert response.status_code == 200

    dashboard = client.get("/api/client/dashboard", headers=headers).json()
    assert dashboard["stats"]["completedSessions"] == 2
    assert dashboard["stats"]["completedQuizzes"] == 2
    assert dashboard["stats"]["progressLevel"] == 2
    assert dashboard["stats"]["certificationsEarned"] == 1

    certifications = client.get("/api/client/certifications", headers=headers).json()["certifications"]
    by_name = {c["name"]: c for c in certifications}
    assert by_name["Anxiety Management Basics"]["isUnlocked"] is True
    assert by_name["Anxiety Management Basics"]["progressPercentage"] == 100
    assert by_name["Emotional Intelligence Explorer"]["isUnlocked"] is False
    # (2/3 sessions + 2/3 quizzes) / 2
    assert by_name["Emotional Intelligence Explorer"]["progressPercentage"] == 67

    progress = client.get("/api/client/progress", headers=headers).json()["progress"]
    assert progress["completedSessions"] == 2
    assert progress["aiSessions"] == 2
    assert progress["averageQuizScore"] == 85
    assert [point["score"] for point in progress["quizTrend"]] == [85, 85]


def test_completing_twice_is_rejected(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    session = start_ai_session(client, headers)
    url = f"/api/client/sessions/{session['id']}/complete"

    assert client.post(url, json={"quizScore": 90}, headers=headers).status_code == 200
    response = client.post(url, json={"quizScore": 90}, headers=headers)
    assert response.status_code == 400
    assert "Cannot move session" in response.json()["error"]


def test_available_doctors(client, client_user, make_user, auth_headers):
    approved = make_user("doctor")
    make_user("doctor", approved=False)
    make_user("doctor", is_active=False)

    doctors = client.get("/api/client/doctors", headers=auth_headers(client_user)).json()["doctors"]
    assert [d["id"] for d in doctors] == [approved.id]


def test_payments(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    response = client.post(
        "/api/client/payments",
        json={"amount": 60, "paymentMethod": "paypal", "transactionId": "PP-1"},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["payment"]["status"] == "pending"

    bad = client.post("/api/client/payments", json={"amount": 60, "paymentMethod": "cash"}, headers=headers)
    assert bad.status_code == 400

    payments = client.get("/api/client/payments", headers=headers).json()["payments"]
    assert [p["transactionId"] for p in payments] == ["PP-1"]
