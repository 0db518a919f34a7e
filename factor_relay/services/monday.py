"""
monday.com GraphQL client with per-attempt timeout, retry and backoff.

Every operation goes through MondayClient._execute(), which retries transport
failures, non-2xx responses and GraphQL `errors` payloads up to
`retry.max_retries` extra times, sleeping min(base * factor**attempt, cap)
between attempts. A successful response that simply matches nothing is not
retried.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from factor_relay.config import BoardClientConfig
from factor_relay.errors import RemoteNotFound, RemoteRejected, RemoteUnreachable

logger = logging.getLogger('services.monday')


GET_ITEM_QUERY = """
query GetItem($itemId: ID!) {
  items(ids: [$itemId]) {
    id
    name
    board { id }
    column_values {
      id
      text
      value
      type
    }
  }
}
"""

GET_COLUMN_VALUE_QUERY = """
query GetColumnValue($itemId: ID!, $columnId: String!) {
  items(ids: [$itemId]) {
    column_values(ids: [$columnId]) {
      text
      value
    }
  }
}
"""

CHANGE_COLUMN_VALUE_MUTATION = """
mutation UpdateColumnValue($itemId: ID!, $columnId: String!, $value: JSON!, $boardId: ID!) {
  change_column_value(item_id: $itemId, column_id: $columnId, value: $value, board_id: $boardId) {
    id
  }
}
"""

GET_BOARD_ITEMS_QUERY = """
query GetBoardById($boardId: ID!) {
  boards(ids: [$boardId]) {
    id
    name
    items_page {
      items {
        id
        name
        column_values {
          id
          text
          value
          type
        }
      }
    }
  }
}
"""


@dataclass
class ColumnValue:
    id: str
    text: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ColumnValue':
        return cls(
            id=str(data.get('id', '')),
            text=data.get('text'),
            value=data.get('value'),
            type=data.get('type'),
        )


@dataclass
class RemoteItem:
    """Snapshot of a board item, fetched per request and never cached."""
    id: str
    name: str
    column_values: List[ColumnValue] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RemoteItem':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name') or '',
            column_values=[ColumnValue.from_dict(c) for c in data.get('column_values') or []],
        )

    def column(self, column_id: str) -> Optional[ColumnValue]:
        for col in self.column_values:
            if col.id == column_id:
                return col
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'column_values': [
                {'id': c.id, 'text': c.text, 'value': c.value, 'type': c.type}
                for c in self.column_values
            ],
        }


def format_number(value: float) -> str:
    """Render a number the way the board displays it: 25.0 -> '25', 2.5 -> '2.5'."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


class MondayClient:
    """
    Thin GraphQL client for the board API.

    Built once by the app factory from an immutable BoardClientConfig; owns
    its requests.Session. `sleep` is injectable so tests can observe the
    backoff schedule without waiting.
    """

    def __init__(self, config: BoardClientConfig, session=None, sleep=time.sleep):
        self.config = config
        self.retry = config.retry
        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': config.api_token,
            'Content-Type': 'application/json',
            'API-Version': config.api_version,
        })
        self._sleep = sleep

    # ── Public operations ─────────────────────────────────────────────

    def fetch_column_value(self, item_id: str, column_id: str) -> Optional[str]:
        """Text of the item's column, or None when the item/column has no value."""
        data = self._execute(
            GET_COLUMN_VALUE_QUERY,
            {'itemId': str(item_id), 'columnId': column_id},
            f"Get column {column_id} value for item {item_id}",
        )
        items = data.get('items') or []
        if not items:
            return None
        column_values = items[0].get('column_values') or []
        if not column_values:
            return None
        return column_values[0].get('text') or None

    def write_column_value(self, item_id: str, column_id: str, value, board_id: Optional[str] = None) -> bool:
        """Set a column value. Returns whether the board acknowledged the change."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = format_number(value)
        data = self._execute(
            CHANGE_COLUMN_VALUE_MUTATION,
            {
                'itemId': str(item_id),
                'columnId': column_id,
                'value': str(value),
                'boardId': str(board_id or self.config.board_id),
            },
            f"Update column {column_id} for item {item_id}",
        )
        return bool(data.get('change_column_value'))

    def fetch_item(self, item_id: str, board_id: Optional[str] = None) -> RemoteItem:
        data = self._execute(GET_ITEM_QUERY, {'itemId': str(item_id)}, f"Get item {item_id}")
        items = data.get('items') or []
        if not items:
            raise RemoteNotFound(f"Item {item_id} not found", details={'item_id': str(item_id)})

        raw = items[0]
        expected_board = board_id or self.config.board_id
        actual_board = (raw.get('board') or {}).get('id')
        if expected_board and actual_board and str(actual_board) != str(expected_board):
            raise RemoteNotFound(
                f"Item {item_id} not found on board {expected_board}",
                details={'item_id': str(item_id), 'board_id': str(expected_board)},
            )
        return RemoteItem.from_dict(raw)

    def fetch_board_items(self, board_id: Optional[str] = None) -> List[RemoteItem]:
        board_id = str(board_id or self.config.board_id)
        data = self._execute(GET_BOARD_ITEMS_QUERY, {'boardId': board_id}, f"Get board {board_id}")
        boards = data.get('boards') or []
        if not boards:
            raise RemoteNotFound(f"Board {board_id} not found", details={'board_id': board_id})
        items = (boards[0].get('items_page') or {}).get('items') or []
        return [RemoteItem.from_dict(item) for item in items]

    # ── Retry loop ────────────────────────────────────────────────────

    def _execute(self, query: str, variables: Dict[str, Any], context: str) -> Dict[str, Any]:
        """POST one GraphQL operation, retrying per self.retry. Returns `data`."""
        max_attempts = self.retry.max_retries + 1

        for attempt in range(max_attempts):
            try:
                return self._attempt(query, variables)
            except (RemoteUnreachable, RemoteRejected) as e:
                if attempt + 1 >= max_attempts:
                    e.attempts = attempt + 1
                    e.details['attempts'] = attempt + 1
                    logger.error(
                        "[Monday API] %s failed after %d attempts: %s",
                        context, attempt + 1, e.message,
                        extra={'context': context, 'attempt': attempt + 1},
                    )
                    raise

                delay = self.retry.delay_for(attempt)
                logger.warning(
                    "[Monday API] %s attempt %d failed, retrying in %.2fs: %s",
                    context, attempt + 1, delay, e.message,
                    extra={'context': context, 'attempt': attempt + 1},
                )
                self._sleep(delay)

        # max_retries < 0 leaves no attempts at all
        raise RemoteUnreachable(f"{context}: no attempts made", attempts=0)

    def _attempt(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug("[Monday API] POST %s", self.config.api_url)
        try:
            response = self.session.post(
                self.config.api_url,
                json={'query': query, 'variables': variables},
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise RemoteUnreachable(f"Monday API timed out after {self.config.timeout}s: {e}")
        except requests.exceptions.RequestException as e:
            raise RemoteUnreachable(f"Monday API is unreachable: {e}")

        if not 200 <= response.status_code < 300:
            raise RemoteRejected(
                f"Monday API Error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise RemoteRejected(
                "Monday API returned a non-JSON body",
                status_code=response.status_code,
            )

        errors = body.get('errors') if isinstance(body, dict) else None
        if errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            raise RemoteRejected(
                f"Monday API Error: {first.get('message') or 'Unknown error'}",
                status_code=response.status_code,
                details={'errors': errors},
            )

        if not isinstance(body, dict):
            raise RemoteRejected("Monday API returned an unexpected payload", status_code=response.status_code)
        return body.get('data') or {}
