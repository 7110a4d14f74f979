# tests/v1/test_comments.py
"""Tests for comment endpoints."""

from fastapi import status


def test_create_and_read_thread(client, published_post, reader_headers, author_headers) -> None:
    created = client.post(
        f"/api/v1/comments/post/{published_post.id}",
        json={"content": "  Lovely post  "},
        headers=reader_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED
    top = created.json()
    assert top["content"] == "Lovely post"
    assert top["parent_comment_id"] is None

    reply = client.post(
        f"/api/v1/comments/{top['id']}/reply",
        json={"content": "Thank you"},
        headers=author_headers,
    )
    assert reply.status_code == status.HTTP_201_CREATED
    assert reply.json()["parent_comment_id"] == top["id"]

    page = client.get(f"/api/v1/comments/post/{published_post.id}").json()
    assert page["total"] == 1
    [node] = page["comments"]
    assert node["reply_count"] == 1
    assert node["replies"][0]["content"] == "Thank you"
    assert node["time_ago"]


def test_nested_replies(client, thread, published_post, reader_headers) -> None:
    page = client.get(f"/api/v1/comments/post/{published_post.id}", headers=reader_headers).json()
    [a] = page["comments"]
    [b] = a["replies"]
    [c] = b["replies"]
    assert (a["id"], b["id"], c["id"]) == (thread["a"].id, thread["b"].id, thread["c"].id)
    assert a["is_owner"] is True


def test_blank_comment_is_rejected(client, published_post, reader_headers) -> None:
    response = client.post(
        f"/api/v1/comments/post/{published_post.id}",
        json={"content": "   "},
        headers=reader_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_comment_on_missing_post(client, reader_headers) -> None:
    response = client.post(
        "/api/v1/comments/post/999999",
        json={"content": "Anyone?"},
        headers=reader_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_edit_own_comment_only(client, thread, reader_headers, author_headers) -> None:
    url = f"/api/v1/comments/{thread['a'].id}"
    assert client.put(url, json={"content": "Edited"}, headers=author_headers).status_code == 403
    response = client.put(url, json={"content": "Edited"}, headers=reader_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["content"] == "Edited"


def test_delete_removes_replies(client, thread, published_post, reader_headers) -> None:
    response = client.delete(f"/api/v1/comments/{thread['a'].id}", headers=reader_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Deleted 3 comment(s)"}
    assert client.get(f"/api/v1/comments/post/{published_post.id}").json()["total"] == 0


def test_like_toggle(client, thread, reader_headers) -> None:
    url = f"/api/v1/comments/{thread['b'].id}/like"
    assert client.put(url, headers=reader_headers).json() == {"liked": True, "likes_count": 1}
    assert client.put(url, headers=reader_headers).json() == {"liked": False, "likes_count": 0}


def test_reports_hide_at_threshold(client, thread, published_post, make_user, auth_headers) -> None:
    url = f"/api/v1/comments/{thread['a'].id}/report"
    reporters = [auth_headers(make_user()) for _ in range(4)]

    first = client.post(url, headers=reporters[0])
    assert first.json() == {"reports_count": 1, "is_hidden": False}
    duplicate = client.post(url, headers=reporters[0])
    assert duplicate.status_code == status.HTTP_409_CONFLICT

    client.post(url, headers=reporters[1])
    third = client.post(url, headers=reporters[2])
    assert third.json() == {"reports_count": 3, "is_hidden": True}
    fourth = client.post(url, headers=reporters[3])
    assert fourth.json() == {"reports_count": 4, "is_hidden": True}

    assert client.get(f"/api/v1/comments/post/{published_post.id}").json()["total"] == 0


def test_comments_page_limit_is_bounded(client, published_post) -> None:
    response = client.get(
        f"/api/v1/comments/post/{published_post.id}",
        params={"limit": 500},
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
