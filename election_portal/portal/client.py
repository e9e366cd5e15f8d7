"""HTTP client for the remote election API."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..results import ResultsSnapshot
from ..shared import Candidate, ElectionApiError, Position
from .config import settings

logger = logging.getLogger(__name__)


def _unwrap(data: Any, *keys: str) -> Any:
    """Strip `{data: ...}` style envelopes, following `keys` in order when present."""
    for key in keys:
        if isinstance(data, dict) and key in data:
            data = data[key]
    return data


class ElectionApiClient:
    """Async client for the election API with a shared connection pool."""

    def __init__(self):
        self.client: Optional[httpx.AsyncClient] = None

    async def initialize(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Create the underlying HTTP client."""
        self.client = httpx.AsyncClient(
            base_url=base_url or settings.ELECTION_API_URL,
            timeout=settings.ELECTION_API_TIMEOUT,
            transport=transport
        )
        logger.info(f"Election API client initialized for {self.client.base_url}")

    async def close(self):
        """Close the HTTP client."""
        try:
            if self.client:
                await self.client.aclose()
                self.client = None
            logger.info("Election API client closed successfully")
        except Exception as e:
            logger.error(f"Error closing election API client: {e}")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            message = data.get("message") or data.get("detail") or data.get("error")
            if message:
                return str(message)
        return f"Request failed with status {response.status_code}"

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs
    ) -> Any:
        """
        Send one request and decode its JSON body.

        Raises:
            ElectionApiError: On transport failure, non-2xx status, or a body
                that is not JSON
        """
        if self.client is None:
            raise ElectionApiError("Election API client is not initialized")

        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await self.client.request(
                method,
                path,
                headers=headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
                **kwargs
            )
        except httpx.TimeoutException as e:
            raise ElectionApiError(f"Timed out waiting for the election API ({method} {path})") from e
        except httpx.HTTPError as e:
            raise ElectionApiError(f"No response received from the election API: {e}") from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(f"Election API {method} {path} failed: {response.status_code} {message}")
            raise ElectionApiError(message, status_code=response.status_code)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise ElectionApiError(
                f"Unexpected response format from the election API ({method} {path})",
                status_code=response.status_code
            ) from e

    async def check_health(self) -> bool:
        """
        Check that the election API answers at all.

        Returns:
            bool: True if the API responded without a server error
        """
        if self.client is None:
            return False
        try:
            response = await self.client.get("/api/election/status")
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.error(f"Election API health check failed: {e}")
            return False

    # ═══════════════════════════════════════════════════════════════
    # VOTER ENDPOINTS
    # ═══════════════════════════════════════════════════════════════

    async def get_election_status(self, token: str) -> Dict[str, Any]:
        """Public election status: `{isVotingOpen, message?}`."""
        return await self._request("GET", "/api/election/status", token=token)

    async def get_vote_status(self, token: str) -> Dict[str, Any]:
        """Current voter's status: `{hasVoted}`."""
        return await self._request("GET", "/api/votes/user-status", token=token)

    @staticmethod
    def _parse_records(records: Any, parse, label: str) -> list:
        """Parse directory records, mapping malformed data to ElectionApiError."""
        if not isinstance(records, list):
            raise ElectionApiError(f"Unexpected {label} data format from the election API")
        try:
            return [parse(record) for record in records]
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Unexpected {label} record format: {e}")
            raise ElectionApiError(f"Failed to parse {label} data from server.") from e

    async def get_positions(
        self,
        token: str,
        status: Optional[str] = None,
        sort_by: Optional[str] = None
    ) -> List[Position]:
        params = {}
        if status:
            params["status"] = status
        if sort_by:
            params["sortBy"] = sort_by
        data = await self._request("GET", "/api/positions", token=token, params=params)
        return self._parse_records(_unwrap(data, "data", "positions"), Position.from_dict, "position")

    async def get_active_positions(self, token: str) -> List[Position]:
        return await self.get_positions(token, status="active", sort_by="order")

    async def get_candidates(
        self,
        token: str,
        position: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[Candidate]:
        params = {}
        if search:
            params["search"] = search
        if position:
            params["position"] = position
        data = await self._request("GET", "/api/candidates", token=token, params=params)
        return self._parse_records(_unwrap(data, "data", "candidates"), Candidate.from_dict, "candidate")

    async def cast_vote(self, token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit a ballot.

        Args:
            token: Voter's bearer token
            payload: `{votesByPosition: {positionId: [candidateId, ...]}}`

        Returns:
            dict: Confirmation, usually `{message}`
        """
        return await self._request(
            "POST", "/api/votes/cast",
            token=token,
            json=payload,
            timeout=settings.SUBMIT_TIMEOUT
        )

    async def get_results(self, token: str) -> ResultsSnapshot:
        """Fetch and parse the current results snapshot."""
        data = await self._request("GET", "/api/votes/results", token=token)
        try:
            return ResultsSnapshot.from_dict(_unwrap(data, "data") or {})
        except (TypeError, ValueError) as e:
            logger.error(f"Unexpected results data format: {e}")
            raise ElectionApiError("Failed to parse election results from server.") from e

    def for_voter(self, token: str) -> 'VoterApi':
        return VoterApi(self, token)

    # ═══════════════════════════════════════════════════════════════
    # ADMIN ENDPOINTS
    # ═══════════════════════════════════════════════════════════════

    async def create_position(self, token: str, position: Position) -> Dict[str, Any]:
        return await self._request("POST", "/api/positions", token=token, json=position.to_request_body())

    async def update_position(self, token: str, position_id: str, position: Position) -> Dict[str, Any]:
        return await self._request(
            "PUT", f"/api/positions/{position_id}",
            token=token,
            json=position.to_request_body()
        )

    async def delete_position(self, token: str, position_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/positions/{position_id}", token=token)

    async def get_candidate(self, token: str, candidate_id: str) -> Candidate:
        data = await self._request("GET", f"/api/candidates/{candidate_id}", token=token)
        return self._parse_records([_unwrap(data, "data", "candidate")], Candidate.from_dict, "candidate")[0]

    async def delete_candidate(self, token: str, candidate_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/candidates/{candidate_id}", token=token)

    async def open_voting(self, token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/open-voting", token=token, json={})

    async def close_voting(self, token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/close-voting", token=token, json={})

    async def enable_registration(self, token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/enable-registration", token=token, json={})

    async def disable_registration(self, token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/disable-registration", token=token, json={})

    async def clear_election_data(self, token: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/clear-database", token=token, json={})

    async def get_voting_status(self, token: str) -> Dict[str, Any]:
        return await self._request("GET", "/api/admin/voting-status", token=token)

    async def get_registration_status(self, token: str) -> Dict[str, Any]:
        return await self._request("GET", "/api/admin/registration-status", token=token)


class VoterApi:
    """Voter endpoints bound to one bearer token, in the shape BallotWorkflow expects."""

    def __init__(self, api: ElectionApiClient, token: str):
        self.api = api
        self.token = token

    async def get_election_status(self) -> Dict[str, Any]:
        return await self.api.get_election_status(self.token)

    async def get_vote_status(self) -> Dict[str, Any]:
        return await self.api.get_vote_status(self.token)

    async def get_active_positions(self) -> List[Position]:
        return await self.api.get_active_positions(self.token)

    async def get_candidates(self) -> List[Candidate]:
        return await self.api.get_candidates(self.token)

    async def cast_vote(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api.cast_vote(self.token, payload)


# Global client instance
election_api = ElectionApiClient()
