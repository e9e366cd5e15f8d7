"""Pytest fixtures for integration tests.

The portal app is driven in-process through httpx.ASGITransport. The remote
election API behind it is replaced by FakeElectionApi, an httpx.MockTransport
handler holding a small election in memory, so no network or external
stack is needed.
"""

import json
from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
import pytest

from election_portal.portal.client import election_api
from election_portal.portal.main import app
from election_portal.portal.sessions import sessions

VOTER_TOKEN = "voter-token"
ADMIN_TOKEN = "admin-token"


class FakeElectionApi:
    """In-memory election API answering the endpoints the portal calls."""

    def __init__(self):
        self.is_voting_open = True
        self.registration_enabled = True
        self.voted_tokens: set = set()
        self.positions: List[Dict[str, Any]] = [
            {"_id": "pos-audit", "name": "Audit", "order": 2, "status": "active",
             "minSelectable": 1, "maxSelectable": 1, "numberOfWinners": 1},
            {"_id": "pos-bod", "name": "BOD", "order": 1, "status": "active",
             "minSelectable": 1, "maxSelectable": 3, "numberOfWinners": 3},
        ]
        self.candidates: List[Dict[str, Any]] = [
            self._candidate("bod1", "pos-bod", "BOD"),
            self._candidate("bod2", "pos-bod", "BOD"),
            self._candidate("bod3", "pos-bod", "BOD"),
            self._candidate("bod4", "pos-bod", "BOD"),
            self._candidate("candX", "pos-audit", "Audit"),
            self._candidate("candY", "pos-audit", "Audit"),
        ]
        self.votes: Dict[str, int] = {c["_id"]: 0 for c in self.candidates}
        self.cast_payloads: List[Dict[str, Any]] = []
        self.requests: List[str] = []
        # path -> (status, body) served instead of the normal response
        self.failures: Dict[str, tuple] = {}

    @staticmethod
    def _candidate(candidate_id: str, position_id: str, position_name: str) -> Dict[str, Any]:
        return {
            "_id": candidate_id,
            "firstName": candidate_id.upper(),
            "lastName": "Doe",
            "position": {"_id": position_id, "name": position_name},
        }

    def results(self) -> Dict[str, Any]:
        positions = []
        for position in sorted(self.positions, key=lambda p: p["order"]):
            standing = sorted(
                (dict(c, votes=self.votes[c["_id"]]) for c in self.candidates
                 if c["position"]["_id"] == position["_id"]),
                key=lambda c: c["votes"],
                reverse=True
            )
            positions.append({
                "positionId": position["_id"],
                "positionName": position["name"],
                "numberOfWinners": position.get("numberOfWinners", position.get("minWinners", 1)),
                "candidates": standing,
            })
        return {"isVotingOpen": self.is_voting_open, "positions": positions}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        if path in self.failures:
            status_code, body = self.failures[path]
            return httpx.Response(status_code, json=body)

        token = request.headers.get("Authorization", "").replace("Bearer ", "")
        route = (request.method, path)

        if route == ("GET", "/api/election/status"):
            return httpx.Response(200, json={"isVotingOpen": self.is_voting_open})
        if route == ("GET", "/api/votes/user-status"):
            return httpx.Response(200, json={"hasVoted": token in self.voted_tokens})
        if route == ("GET", "/api/positions"):
            return httpx.Response(200, json={"data": self._positions(request.url.params)})
        if route == ("GET", "/api/candidates"):
            return httpx.Response(200, json={"data": {"candidates": self._candidates(request.url.params)}})
        if request.method == "GET" and path.startswith("/api/candidates/"):
            return self._candidate_by_id(path.rsplit("/", 1)[-1])
        if route == ("POST", "/api/votes/cast"):
            return self._cast(token, json.loads(request.content))
        if route == ("GET", "/api/votes/results"):
            return httpx.Response(200, json={"data": self.results()})

        if route == ("POST", "/api/admin/open-voting"):
            self.is_voting_open = True
            return httpx.Response(200, json={"message": "Voting has been opened."})
        if route == ("POST", "/api/admin/close-voting"):
            self.is_voting_open = False
            return httpx.Response(200, json={"message": "Voting has been closed."})
        if route == ("POST", "/api/admin/enable-registration"):
            self.registration_enabled = True
            return httpx.Response(200, json={})
        if route == ("POST", "/api/admin/disable-registration"):
            self.registration_enabled = False
            return httpx.Response(200, json={})
        if route == ("POST", "/api/admin/clear-database"):
            self.voted_tokens.clear()
            self.votes = {cid: 0 for cid in self.votes}
            return httpx.Response(200, json={"message": "Database cleared."})
        if route == ("GET", "/api/admin/voting-status"):
            return httpx.Response(200, json={"isVotingOpen": self.is_voting_open})
        if route == ("GET", "/api/admin/registration-status"):
            return httpx.Response(200, json={"isRegistrationEnabled": self.registration_enabled})
        if route == ("POST", "/api/positions"):
            body = json.loads(request.content)
            created = dict(body, _id=f"pos-{len(self.positions) + 1}")
            self.positions.append(created)
            return httpx.Response(201, json={"data": created})
        if request.method == "DELETE" and path.startswith("/api/positions/"):
            return httpx.Response(200, json={"message": "Position deleted"})

        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})

    def _positions(self, params) -> List[Dict[str, Any]]:
        status = params.get("status")
        return [p for p in self.positions if status is None or p.get("status") == status]

    def _candidates(self, params) -> List[Dict[str, Any]]:
        search = (params.get("search") or "").lower()
        position = params.get("position")
        return [
            c for c in self.candidates
            if (not search or search in f"{c['firstName']} {c['lastName']}".lower())
            and (position is None or c["position"]["_id"] == position)
        ]

    def _candidate_by_id(self, candidate_id: str) -> httpx.Response:
        for candidate in self.candidates:
            if candidate["_id"] == candidate_id:
                return httpx.Response(200, json={"data": candidate})
        return httpx.Response(404, json={"message": "Candidate not found"})

    def _cast(self, token: str, payload: Dict[str, Any]) -> httpx.Response:
        if not self.is_voting_open:
            return httpx.Response(400, json={"message": "Voting is currently closed."})
        if token in self.voted_tokens:
            return httpx.Response(400, json={"message": "You have already voted."})
        self.cast_payloads.append(payload)
        self.voted_tokens.add(token)
        for candidate_ids in payload["votesByPosition"].values():
            for candidate_id in candidate_ids:
                self.votes[candidate_id] += 1
        return httpx.Response(201, json={"message": "Vote cast successfully"})


@pytest.fixture
def fake_api() -> FakeElectionApi:
    return FakeElectionApi()


@pytest.fixture
async def portal_client(fake_api: FakeElectionApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for the portal app, wired to the fake election API.

    ASGITransport does not run the app lifespan, so the election API client
    is initialized here instead. Rate limiting is switched off for the test.
    """
    await election_api.initialize(
        base_url="http://election.test",
        transport=httpx.MockTransport(fake_api)
    )
    app.state.limiter.enabled = False
    sessions.clear()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://portal.test") as client:
        yield client

    sessions.clear()
    app.state.limiter.enabled = True
    await election_api.close()


def auth(token: Optional[str] = VOTER_TOKEN) -> Dict[str, str]:
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"} if token else {}


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "ballot: mark test as exercising the ballot workflow routes"
    )
    config.addinivalue_line(
        "markers",
        "admin: mark test as exercising the administrator routes"
    )
