"""API tests for reviews and their comment threads."""

from __future__ import annotations

import httpx

from reelcritic.runtime import AppServices


class TestWritingReviews:
    async def test_admin_creates_review(
        self, client: httpx.AsyncClient, admin, post_review
    ) -> None:
        review = await post_review(admin, 550, rating=4)

        assert review["tmdbId"] == 550
        assert review["author"]["username"] == "admin"
        assert review["slug"] == "a-modern-classic"
        assert review["wordCount"] == 11
        assert review["readTime"] == 1

        details = (await client.get("/api/v1/movies/550")).json()
        assert details["reviewCount"] == 1
        assert details["movie"]["averageRating"] == 4.0
        assert details["movie"]["reviews"][0]["id"] == review["id"]

    async def test_users_cannot_review(self, client: httpx.AsyncClient, user) -> None:
        response = await client.post(
            "/api/v1/movies/550/reviews",
            json={"title": "Nope", "content": "I am not allowed to write this.", "rating": 3},
            headers=user,
        )
        assert response.status_code == 403

    async def test_anonymous_cannot_review(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/movies/550/reviews",
            json={"title": "Nope", "content": "I am not allowed to write this.", "rating": 3},
        )
        assert response.status_code == 401

    async def test_one_review_per_movie(
        self, client: httpx.AsyncClient, admin, post_review
    ) -> None:
        await post_review(admin, 550)
        response = await client.post(
            "/api/v1/movies/550/reviews",
            json={"title": "Second take", "content": "Even better the second time.", "rating": 4},
            headers=admin,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "You have already reviewed this movie"

    async def test_invalid_rating(self, client: httpx.AsyncClient, admin) -> None:
        response = await client.post(
            "/api/v1/movies/550/reviews",
            json={"title": "Too good", "content": "Off the scale entirely.", "rating": 6},
            headers=admin,
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "body.rating"

    async def test_review_listing_is_refreshed(
        self, client: httpx.AsyncClient, register, admin, post_review
    ) -> None:
        """A cached review page does not hide a newly written review."""
        await post_review(admin, 550)
        first = (await client.get("/api/v1/movies/550/reviews")).json()
        assert first["pagination"]["totalItems"] == 1

        critic = await register("critic", admin=True)
        await post_review(critic, 550, rating=2)

        second = (await client.get("/api/v1/movies/550/reviews")).json()
        assert second["pagination"]["totalItems"] == 2
        assert {r["author"]["username"] for r in second["reviews"]} == {"critic", "admin"}


class TestEditingReviews:
    """Tests for PUT and DELETE /movies/reviews/{reviewId}."""

    async def test_author_updates(self, client: httpx.AsyncClient, admin, post_review) -> None:
        review = await post_review(admin, 550)
        response = await client.put(
            f"/api/v1/movies/reviews/{review['id']}", json={"rating": 2}, headers=admin
        )
        assert response.status_code == 200
        assert response.json()["review"]["rating"] == 2

        details = (await client.get("/api/v1/movies/550")).json()
        assert details["movie"]["averageRating"] == 2.0

    async def test_other_users_cannot_edit(
        self, client: httpx.AsyncClient, admin, user, post_review
    ) -> None:
        review = await post_review(admin, 550)
        url = f"/api/v1/movies/reviews/{review['id']}"

        updated = await client.put(url, json={"rating": 1}, headers=user)
        deleted = await client.delete(url, headers=user)

        assert updated.status_code == 403
        assert updated.json()["message"] == "You can only update your own reviews"
        assert deleted.status_code == 403

    async def test_delete(self, client: httpx.AsyncClient, admin, post_review) -> None:
        review = await post_review(admin, 550)
        url = f"/api/v1/movies/reviews/{review['id']}"

        response = await client.delete(url, headers=admin)

        assert response.json() == {"message": "Review deleted successfully"}
        assert (await client.get(url)).status_code == 404
        details = (await client.get("/api/v1/movies/550")).json()
        assert details["reviewCount"] == 0
        assert details["movie"]["averageRating"] == 0.0

    async def test_unknown_review(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/movies/reviews/does-not-exist")
        assert response.status_code == 404
        assert response.json()["message"] == "Review 'does-not-exist' not found"


class TestComments:
    """Tests for comment threads under a review."""

    async def test_thread(self, client: httpx.AsyncClient, admin, user, post_review) -> None:
        review = await post_review(admin, 550)
        url = f"/api/v1/movies/reviews/{review['id']}/comments"

        top = await client.post(url, json={"content": "  Great read  "}, headers=user)
        assert top.status_code == 201
        top_id = top.json()["comment"]["id"]
        assert top.json()["comment"]["content"] == "Great read"

        reply = await client.post(
            url, json={"content": "Thanks!", "parentComment": top_id}, headers=admin
        )
        assert reply.status_code == 201

        thread = (await client.get(url)).json()
        assert thread["total"] == 1
        assert thread["comments"][0]["replyCount"] == 1
        assert thread["comments"][0]["replies"][0]["author"]["username"] == "admin"

        detail = (await client.get(f"/api/v1/movies/reviews/{review['id']}")).json()
        assert detail["review"]["commentCount"] == 2
        assert detail["comments"][0]["id"] == top_id

    async def test_reply_to_other_review(
        self, client: httpx.AsyncClient, admin, user, post_review
    ) -> None:
        first = await post_review(admin, 550)
        second = await post_review(admin, 551)
        comment = await client.post(
            f"/api/v1/movies/reviews/{first['id']}/comments", json={"content": "Hi"}, headers=user
        )

        response = await client.post(
            f"/api/v1/movies/reviews/{second['id']}/comments",
            json={"content": "Wrong thread", "parentComment": comment.json()["comment"]["id"]},
            headers=user,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Parent comment does not belong to this review"

    async def test_comment_requires_login(
        self, client: httpx.AsyncClient, admin, post_review
    ) -> None:
        review = await post_review(admin, 550)
        response = await client.post(
            f"/api/v1/movies/reviews/{review['id']}/comments", json={"content": "Hi"}
        )
        assert response.status_code == 401

    async def test_empty_comment(self, client: httpx.AsyncClient, admin, post_review) -> None:
        review = await post_review(admin, 550)
        response = await client.post(
            f"/api/v1/movies/reviews/{review['id']}/comments",
            json={"content": "   "},
            headers=admin,
        )
        assert response.status_code == 400


class TestLikingFromMovies:
    """Tests for the like shortcuts under /movies."""

    async def test_review_like_toggle(
        self, client: httpx.AsyncClient, services: AppServices, admin, user, post_review
    ) -> None:
        review = await post_review(admin, 550)
        await client.get("/api/v1/movies/550")
        assert services.cache.get("reviews_550_1_5") is not None

        liked = await client.post(f"/api/v1/movies/reviews/{review['id']}/like", headers=user)
        assert liked.json() == {
            "message": "Review liked",
            "liked": True,
            "action": "liked",
            "likeCount": 1,
        }
        assert services.cache.get("reviews_550_1_5") is None

        unliked = await client.post(f"/api/v1/movies/reviews/{review['id']}/like", headers=user)
        assert unliked.json()["likeCount"] == 0
        assert unliked.json()["message"] == "Review unliked"

    async def test_comment_like(
        self, client: httpx.AsyncClient, admin, user, post_review
    ) -> None:
        review = await post_review(admin, 550)
        comment = await client.post(
            f"/api/v1/movies/reviews/{review['id']}/comments", json={"content": "Hi"}, headers=user
        )
        comment_id = comment.json()["comment"]["id"]

        response = await client.post(f"/api/v1/movies/comments/{comment_id}/like", headers=admin)

        assert response.json()["message"] == "Comment liked"
        thread = await client.get(f"/api/v1/movies/reviews/{review['id']}/comments")
        assert thread.json()["comments"][0]["likes"] == 1

    async def test_like_unknown_review(self, client: httpx.AsyncClient, user) -> None:
        response = await client.post("/api/v1/movies/reviews/missing/like", headers=user)
        assert response.status_code == 404
