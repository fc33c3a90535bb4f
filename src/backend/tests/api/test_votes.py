"""
Tests for vote API endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.unit
class TestVoteEndpoints:
    """Test vote-related endpoints."""

    async def test_vote_requires_authentication(self, client: AsyncClient) -> None:
        """Test that voting requires authentication."""
        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "S1", "category": "LIGHTS"},
        )
        assert response.status_code in [401, 403]

    async def test_cast_vote(self, client: AsyncClient, auth_headers, make_user, make_submission) -> None:
        """Test a cast returns the updated user and submission."""
        await make_user("user-1")
        await make_submission("S1", votes={"LIGHTS": 3, "OVERALL": 4})

        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "S1", "category": "lights", "delta": 1},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "applied"
        assert data["message"] == "Vote recorded"
        assert data["category"] == "LIGHTS"
        assert data["user"]["votes_remaining_per_address"] == {"S1": 9}
        assert data["submission"]["votes"]["LIGHTS"] == 4
        assert data["submission"]["total_votes"] == 8

    async def test_rejected_vote_is_not_an_error(
        self, client: AsyncClient, auth_headers, make_user, make_submission
    ) -> None:
        """Test a policy rejection returns 200 with status rejected."""
        await make_user("user-1", votes_remaining_per_address={"S1": 0})
        await make_submission("S1", votes={"OVERALL": 10})

        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "S1", "category": "OVERALL"},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "rejected"
        assert data["reason"] == "no_votes_remaining"
        assert data["submission"]["total_votes"] == 10

    async def test_retract_endpoint(self, client: AsyncClient, auth_headers, make_user, make_submission) -> None:
        """Test DELETE takes one vote back."""
        await make_user("user-1", votes_remaining_per_address={"S1": 8})
        await make_submission("S1", votes={"CLASSIC": 2})

        response = await client.delete("/api/v1/votes/S1/CLASSIC", headers=auth_headers("user-1"))
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "applied"
        assert data["message"] == "Vote retracted"
        assert data["delta"] == -1
        assert data["user"]["votes_remaining_per_address"]["S1"] == 9
        assert data["submission"]["votes"]["CLASSIC"] == 1

    async def test_retract_from_empty_category(
        self, client: AsyncClient, auth_headers, make_user, make_submission
    ) -> None:
        await make_user("user-1", votes_remaining_per_address={"S1": 5})
        await make_submission("S1")

        response = await client.delete("/api/v1/votes/S1/CREATIVE", headers=auth_headers("user-1"))
        assert response.status_code == 200
        assert response.json()["reason"] == "nothing_to_retract"

    async def test_unknown_category(self, client: AsyncClient, auth_headers, make_user, make_submission) -> None:
        """Test an unknown category is a 422."""
        await make_user("user-1")
        await make_submission("S1")

        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "S1", "category": "TACKIEST"},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "InvalidArgumentError"

    async def test_invalid_delta(self, client: AsyncClient, auth_headers, make_user, make_submission) -> None:
        await make_user("user-1")
        await make_submission("S1")

        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "S1", "category": "LIGHTS", "delta": 3},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 422

    async def test_unknown_submission(self, client: AsyncClient, auth_headers, make_user) -> None:
        """Test voting on a missing submission is a 404."""
        await make_user("user-1")

        response = await client.post(
            "/api/v1/votes",
            json={"submission_id": "missing", "category": "LIGHTS"},
            headers=auth_headers("user-1"),
        )
        assert response.status_code == 404
        assert response.json()["retryable"] is False

    async def test_vote_status(self, client: AsyncClient, auth_headers, make_user, make_submission) -> None:
        """Test the remaining allowance defaults to the maximum."""
        await make_user("user-1", votes_remaining_per_address={"S1": 3})
        await make_submission("S1")
        await make_submission("S2")

        response = await client.get("/api/v1/votes/status/S1", headers=auth_headers("user-1"))
        assert response.status_code == 200
        assert response.json() == {"submission_id": "S1", "votes_remaining": 3, "max_votes": 10}

        response = await client.get("/api/v1/votes/status/S2", headers=auth_headers("user-1"))
        assert response.json()["votes_remaining"] == 10

    async def test_vote_status_unknown_submission(self, client: AsyncClient, auth_headers, make_user) -> None:
        """Test the status of a missing submission is a 404."""
        await make_user("user-1")

        response = await client.get("/api/v1/votes/status/ghost", headers=auth_headers("user-1"))
        assert response.status_code == 404
        assert response.json()["error_type"] == "NotFoundError"
