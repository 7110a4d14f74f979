# tests/v1/test_admin.py
"""Tests for administrative endpoints."""

from fastapi import status


def test_set_role(client, reader, admin_headers) -> None:
    response = client.put(
        "/api/v1/admin/users/role",
        json={"userId": reader.id, "role": "author"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["role"] == "author"


def test_set_role_rejects_anonymous(client, reader, admin_headers) -> None:
    response = client.put(
        "/api/v1/admin/users/role",
        json={"userId": reader.id, "role": "anonymous"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_set_role_requires_admin(client, reader, author_headers) -> None:
    response = client.put(
        "/api/v1/admin/users/role",
        json={"userId": reader.id, "role": "admin"},
        headers=author_headers,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_review_queue_requires_admin(client, author_headers) -> None:
    response = client.get("/api/v1/admin/posts/under-review", headers=author_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_hidden_comment_moderation(client, thread, make_user, auth_headers, admin_headers) -> None:
    comment_id = thread["a"].id
    for _ in range(3):
        client.post(f"/api/v1/comments/{comment_id}/report", headers=auth_headers(make_user()))

    hidden = client.get("/api/v1/admin/comments/hidden", headers=admin_headers).json()
    assert [comment["id"] for comment in hidden] == [comment_id]

    response = client.put(f"/api/v1/admin/comments/{comment_id}/unhide", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_hidden"] is False
    assert client.get("/api/v1/admin/comments/hidden", headers=admin_headers).json() == []
