"""Tests for feedback intake."""

from fastapi.testclient import TestClient


def test_create_feedback(client: TestClient, setup_conversation, faker):
    message = faker.sentence()
    resp = client.post(
        "/feedbacks",
        json={
            "conversationId": setup_conversation.id,
            "rating": 4,
            "message": message,
            "language": "es",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["conversationId"] == setup_conversation.id
    assert body["rating"] == 4
    assert body["message"] == message


def test_create_feedback_rejects_bad_rating(client: TestClient):
    resp = client.post("/feedbacks", json={"rating": 7, "message": "Great"})
    assert resp.status_code == 422


def test_create_feedback_requires_message(client: TestClient):
    resp = client.post("/feedbacks", json={"rating": 3})
    assert resp.status_code == 422
