from abc import abstractmethod
from typing import Any
import json

import httpx
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.ClientInterface import ClientInterface

from shared.helper.HelperConfig import HelperConfig

SCROLL_PAGE_SIZE = 1000


class RAGClientInterface(ClientInterface):
    """Vector store holding chunk embeddings and their ChunkPoint payloads.

    Ranking happens in-process, so the store only needs to upsert, delete and
    hand back an agent's ready chunks with their vectors.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_scroll(self) -> str:
        """Returns the endpoint path for scroll requests."""
        pass

    @abstractmethod
    def _get_endpoint_points(self) -> str:
        """Returns the endpoint path for points upsert requests."""
        pass

    @abstractmethod
    def _get_endpoint_delete_points(self) -> str:
        """Returns the endpoint path for deleting points by filter."""
        pass

    @abstractmethod
    def _get_endpoint_check_collection_existence(self) -> str:
        """Returns the endpoint path for the collection existence check."""
        pass

    @abstractmethod
    def _get_endpoint_create_collection(self) -> str:
        """Returns the endpoint path for collection creation."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_match_filter(self, key: str, value: Any) -> dict:
        """
        Builds a backend-specific equality condition on a payload field.

        Args:
            key (str): Payload field name (e.g. "agent_id").
            value (Any): Value the field must equal.

        Returns:
            dict: The condition, to be combined by the other payload builders.
        """
        pass

    @abstractmethod
    def get_scroll_payload(self, filters: list[dict], with_payload: bool | list, with_vector: bool, limit: int | None = None, offset: str | int | None = None) -> dict:
        """
        Returns the body of a scroll request.

        Args:
            filters (list[dict]): Conditions that must all match.
            with_payload (bool | list): Whether to include the payload, or which payload fields.
            with_vector (bool): Whether to include the vector.
            limit (int | None): Max points per page.
            offset (str | int | None): Cursor returned by the previous page, None to start.

        Returns:
            dict: The payload for the scroll request.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, filters: list[dict]) -> dict:
        """
        Returns the body of a filter-based delete request.

        Args:
            filters (list[dict]): Conditions that must all match.
        """
        pass

    @abstractmethod
    def extract_scroll_content(self, raw_response: dict) -> tuple[list[dict], str | int | None]:
        """
        Extracts the points and the next page cursor from a raw scroll response.

        Returns:
            tuple[list[dict], str | int | None]: Points and next page offset (None on the last page).
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        """Check if the chunk collection exists in the rag backend."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_collection_existence())
        return bool(resp.json().get("result", {}).get("exists"))

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> httpx.Response:
        """Create the chunk collection.

        Args:
            vector_size (int): Dimension of the configured embedding model.
            distance (str): The distance metric for the vectors.
        """
        return await self.do_request(
            method="PUT",
            json={"vectors": {"size": vector_size, "distance": distance}},
            endpoint=self._get_endpoint_create_collection(),
            raise_on_error=True,
        )

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> httpx.Response:
        """Insert new points or replace existing ones with the same ID.

        Args:
            points (list[dict[str, Any]]): Points built by build_point().
        """
        return await self.do_request(
            method="PUT",
            content=json.dumps({"points": points}),
            endpoint=self._get_endpoint_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_delete_points(self, filters: list[dict]) -> None:
        """Delete all points matching every condition.

        Callers must always include an agent_id condition.
        """
        await self.do_request(
            method="POST",
            content=json.dumps(self.get_delete_payload(filters)),
            endpoint=self._get_endpoint_delete_points(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )

    async def do_scroll(self, filters: list[dict], with_payload: bool | list, with_vector: bool, limit: int | None = None, offset: str | int | None = None) -> ScrollResult:
        """Scroll a single page of points matching the filters."""
        resp = await self.do_request(
            method="POST",
            content=json.dumps(self.get_scroll_payload(filters, with_payload, with_vector, limit, offset)),
            endpoint=self._get_endpoint_scroll(),
            additional_headers={"Content-Type": "application/json"},
            raise_on_error=True,
        )
        points, next_offset = self.extract_scroll_content(resp.json())
        return ScrollResult(result=points, next_page_offset=next_offset)

    async def do_scroll_all(self, filters: list[dict], with_payload: bool | list, with_vector: bool) -> ScrollResult:
        """Scroll through ALL points matching the filters, following next_page_offset.

        Returns:
            ScrollResult: All matching points; next_page_offset is always None.
        """
        all_points: list[dict] = []
        offset: str | int | None = None
        page = 1
        while True:
            page_result = await self.do_scroll(
                filters=filters,
                with_payload=with_payload,
                with_vector=with_vector,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
            )
            all_points.extend(page_result.result)
            self.logging.debug(
                "Fetched RAG points page %d from %s, total points so far: %d",
                page, self.get_engine_name(), len(all_points),
            )
            offset = page_result.next_page_offset
            if offset is None:
                break
            page += 1
        return ScrollResult(result=all_points)
