# category_tree/services/http_store.py
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic.alias_generators import to_camel

from ..config import Config
from ..exceptions import CancelledError, ConflictError, NetworkError, NotFoundError
from ..models.category import CategoryId, CategoryRecord, ListParams, ListResult
from ..utils.cancellation import CancellationToken
from .store import CategoryStore


class HttpCategoryStore(CategoryStore):
    """Category store backed by the inventory REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.logger = logging.getLogger(__name__)
        if client is None:
            headers = {'Accept': 'application/json'}
            api_token = token if token is not None else Config.API_TOKEN
            if api_token:
                headers['Authorization'] = f"Bearer {api_token}"
            client = httpx.AsyncClient(
                base_url=base_url or Config.require('API_BASE_URL'),
                headers=headers,
                timeout=timeout if timeout is not None else Config.HTTP_TIMEOUT,
            )
        self.client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def list(self, params: ListParams, token: Optional[CancellationToken] = None) -> ListResult:
        if token is None:
            body = await self._request('GET', '/categories', params=params.to_query())
            return self._parse_list(body)

        token.raise_if_cancelled()
        request = asyncio.ensure_future(
            self._request('GET', '/categories', params=params.to_query())
        )
        unregister = token.add_callback(request.cancel)
        try:
            body = await request
        except asyncio.CancelledError:
            if token.cancelled:
                raise CancelledError() from None
            raise
        finally:
            unregister()
        return self._parse_list(body)

    async def create(self, data: Dict[str, Any]) -> CategoryRecord:
        body = await self._request('POST', '/categories', json=self._payload(data))
        return CategoryRecord.model_validate(self._unwrap(body))

    async def update(self, category_id: CategoryId, data: Dict[str, Any]) -> CategoryRecord:
        body = await self._request('PUT', f'/categories/{category_id}', json=self._payload(data))
        return CategoryRecord.model_validate(self._unwrap(body))

    async def remove(self, category_id: CategoryId) -> None:
        await self._request('DELETE', f'/categories/{category_id}')

    @staticmethod
    def _payload(data: Dict[str, Any]) -> Dict[str, Any]:
        payload = {to_camel(key): value for key, value in data.items()}
        for key, value in payload.items():
            if hasattr(value, 'isoformat'):
                payload[key] = value.isoformat()
        return payload

    @staticmethod
    def _unwrap(body: Any) -> Any:
        # The API wraps payloads as {"success": ..., "data": ...}
        if isinstance(body, dict) and 'data' in body and 'id' not in body:
            return body['data']
        return body

    def _parse_list(self, body: Any) -> ListResult:
        if isinstance(body, list):
            return ListResult(items=body, total=len(body))
        items = body.get('items', body.get('data')) or []
        total = body.get('total')
        if total is None:
            total = (body.get('pagination') or {}).get('total')
        return ListResult(items=items, total=total if total is not None else len(items))

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            self.logger.warning(f"{method} {url} timed out: {e}")
            raise NetworkError("The category service timed out") from e
        except httpx.TransportError as e:
            self.logger.warning(f"{method} {url} failed: {e}")
            raise NetworkError(f"Could not reach the category service: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _error_for(self, response: httpx.Response) -> Exception:
        message = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get('message') or body.get('detail') or body.get('error')
        message = message or response.reason_phrase

        self.logger.warning(f"Category service answered {response.status_code}: {message}")
        if response.status_code == 404:
            return NotFoundError(message)
        if response.status_code >= 500:
            return NetworkError(message)
        return ConflictError(message, status_code=response.status_code)
