"""Tests for factor_relay.services.monday — GraphQL client, retry and backoff."""
import pytest
import requests
from unittest.mock import MagicMock, call

from factor_relay.config import BoardClientConfig, RetryConfig
from factor_relay.errors import RemoteNotFound, RemoteRejected, RemoteUnreachable
from factor_relay.services.monday import MondayClient, RemoteItem, format_number


def _response(body=None, status_code=200, text=''):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text or str(body)
    resp.json.return_value = body
    return resp


def _ok(data):
    return _response({'data': data, 'account_id': 1})


@pytest.fixture
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def make_client(http, sleep):
    def _make(**retry_overrides):
        retry = RetryConfig(**{
            'max_retries': 3, 'base_delay': 1.0, 'max_delay': 10.0, 'backoff_factor': 2.0,
            **retry_overrides,
        })
        config = BoardClientConfig(
            api_token='secret-token', board_id='4242',
            api_url='https://api.monday.test/v2', timeout=30.0, retry=retry,
        )
        return MondayClient(config, session=http, sleep=sleep)
    return _make


@pytest.fixture
def client(make_client):
    return make_client()


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------

class TestRequestShape:

    def test_session_carries_auth_and_version_headers(self, client, http):
        assert http.headers['Authorization'] == 'secret-token'
        assert http.headers['API-Version'] == '2023-10'
        assert http.headers['Content-Type'] == 'application/json'

    def test_posts_query_with_variables_and_timeout(self, client, http):
        http.post.return_value = _ok({'items': []})
        client.fetch_column_value('123', 'numbers_input')

        args, kwargs = http.post.call_args
        assert args[0] == 'https://api.monday.test/v2'
        assert kwargs['timeout'] == 30.0
        assert kwargs['json']['variables'] == {'itemId': '123', 'columnId': 'numbers_input'}
        assert 'column_values(ids: [$columnId])' in kwargs['json']['query']


# ---------------------------------------------------------------------------
# fetch_column_value
# ---------------------------------------------------------------------------

class TestFetchColumnValue:

    def test_returns_first_column_text(self, client, http):
        http.post.return_value = _ok({'items': [{'column_values': [{'text': '10', 'value': '"10"'}]}]})
        assert client.fetch_column_value('123', 'numbers_input') == '10'

    def test_missing_item_returns_none(self, client, http):
        http.post.return_value = _ok({'items': []})
        assert client.fetch_column_value('123', 'numbers_input') is None

    def test_missing_column_returns_none(self, client, http):
        http.post.return_value = _ok({'items': [{'column_values': []}]})
        assert client.fetch_column_value('123', 'numbers_input') is None

    def test_empty_text_returns_none(self, client, http):
        http.post.return_value = _ok({'items': [{'column_values': [{'text': '', 'value': None}]}]})
        assert client.fetch_column_value('123', 'numbers_input') is None

    def test_absent_value_is_not_retried(self, client, http, sleep):
        http.post.return_value = _ok({'items': []})
        client.fetch_column_value('123', 'numbers_input')
        assert http.post.call_count == 1
        sleep.assert_not_called()


# ---------------------------------------------------------------------------
# write_column_value
# ---------------------------------------------------------------------------

class TestWriteColumnValue:

    def test_integral_float_is_sent_without_decimal(self, client, http):
        http.post.return_value = _ok({'change_column_value': {'id': '123'}})
        assert client.write_column_value('123', 'numbers_result', 25.0) is True
        variables = http.post.call_args.kwargs['json']['variables']
        assert variables == {
            'itemId': '123', 'columnId': 'numbers_result', 'value': '25', 'boardId': '4242',
        }

    def test_explicit_board_id_wins(self, client, http):
        http.post.return_value = _ok({'change_column_value': {'id': '123'}})
        client.write_column_value('123', 'numbers_result', 2.5, '999')
        variables = http.post.call_args.kwargs['json']['variables']
        assert variables['boardId'] == '999'
        assert variables['value'] == '2.5'

    def test_unacknowledged_mutation_returns_false(self, client, http):
        http.post.return_value = _ok({'change_column_value': None})
        assert client.write_column_value('123', 'numbers_result', 1) is False


# ---------------------------------------------------------------------------
# fetch_item / fetch_board_items
# ---------------------------------------------------------------------------

class TestFetchItem:

    def test_returns_remote_item(self, client, http):
        http.post.return_value = _ok({'items': [{
            'id': '123', 'name': 'Widget', 'board': {'id': '4242'},
            'column_values': [{'id': 'numbers_input', 'text': '10', 'value': '"10"', 'type': 'numbers'}],
        }]})
        item = client.fetch_item('123')
        assert isinstance(item, RemoteItem)
        assert item.name == 'Widget'
        assert item.column('numbers_input').text == '10'
        assert item.column('nope') is None

    def test_missing_item_raises_not_found_without_retry(self, client, http, sleep):
        http.post.return_value = _ok({'items': []})
        with pytest.raises(RemoteNotFound):
            client.fetch_item('123')
        assert http.post.call_count == 1
        sleep.assert_not_called()

    def test_item_on_other_board_is_not_found(self, client, http):
        http.post.return_value = _ok({'items': [{'id': '123', 'name': 'x', 'board': {'id': '1'}}]})
        with pytest.raises(RemoteNotFound):
            client.fetch_item('123', '4242')


class TestFetchBoardItems:

    def test_returns_items_page(self, client, http):
        http.post.return_value = _ok({'boards': [{
            'id': '4242', 'name': 'Board',
            'items_page': {'items': [
                {'id': '1', 'name': 'A', 'column_values': []},
                {'id': '2', 'name': 'B', 'column_values': []},
            ]},
        }]})
        items = client.fetch_board_items()
        assert [i.id for i in items] == ['1', '2']
        assert http.post.call_args.kwargs['json']['variables'] == {'boardId': '4242'}

    def test_missing_board_raises_not_found(self, client, http):
        http.post.return_value = _ok({'boards': []})
        with pytest.raises(RemoteNotFound):
            client.fetch_board_items('777')


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------

class TestRetryPolicy:

    def test_transient_failures_then_success(self, client, http, sleep):
        http.post.side_effect = [
            requests.exceptions.ConnectionError('reset'),
            requests.exceptions.ConnectionError('reset'),
            _ok({'items': [{'column_values': [{'text': '7'}]}]}),
        ]
        assert client.fetch_column_value('1', 'c') == '7'
        assert http.post.call_count == 3
        assert sleep.call_args_list == [call(1.0), call(2.0)]

    def test_exhaustion_makes_max_retries_plus_one_attempts(self, client, http, sleep):
        http.post.side_effect = requests.exceptions.ConnectionError('down')
        with pytest.raises(RemoteUnreachable) as exc_info:
            client.fetch_column_value('1', 'c')
        assert http.post.call_count == 4
        assert exc_info.value.attempts == 4
        assert sleep.call_args_list == [call(1.0), call(2.0), call(4.0)]

    def test_delay_is_capped(self, make_client, http, sleep):
        client = make_client(max_retries=5, backoff_factor=3.0)
        http.post.side_effect = requests.exceptions.ConnectionError('down')
        with pytest.raises(RemoteUnreachable):
            client.fetch_column_value('1', 'c')
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 3.0, 9.0, 10.0, 10.0]

    def test_timeout_counts_as_transport_failure(self, client, http):
        http.post.side_effect = [
            requests.exceptions.Timeout('slow'),
            _ok({'change_column_value': {'id': '1'}}),
        ]
        assert client.write_column_value('1', 'c', 3) is True
        assert http.post.call_count == 2

    def test_non_2xx_is_retried_then_rejected(self, client, http, sleep):
        http.post.return_value = _response({'error': 'bad gateway'}, status_code=502)
        with pytest.raises(RemoteRejected) as exc_info:
            client.fetch_item('1')
        assert http.post.call_count == 4
        assert exc_info.value.status_code == 502
        assert exc_info.value.attempts == 4

    def test_graphql_errors_on_200_are_rejected(self, client, http):
        http.post.return_value = _response({'data': None, 'errors': [{'message': 'Column not found'}]})
        with pytest.raises(RemoteRejected) as exc_info:
            client.fetch_column_value('1', 'c')
        assert 'Column not found' in exc_info.value.message
        assert http.post.call_count == 4

    def test_graphql_error_then_success(self, client, http, sleep):
        http.post.side_effect = [
            _response({'errors': [{'message': 'Complexity budget exhausted'}]}),
            _ok({'items': [{'column_values': [{'text': '3'}]}]}),
        ]
        assert client.fetch_column_value('1', 'c') == '3'
        assert sleep.call_args_list == [call(1.0)]

    def test_zero_retries_means_single_attempt(self, make_client, http, sleep):
        client = make_client(max_retries=0)
        http.post.side_effect = requests.exceptions.ConnectionError('down')
        with pytest.raises(RemoteUnreachable):
            client.fetch_column_value('1', 'c')
        assert http.post.call_count == 1
        sleep.assert_not_called()

    def test_non_json_body_is_rejected(self, client, http):
        resp = _response(None)
        resp.json.side_effect = ValueError('no json')
        http.post.return_value = resp
        with pytest.raises(RemoteRejected):
            client.fetch_column_value('1', 'c')


class TestFormatNumber:

    @pytest.mark.parametrize('value,expected', [
        (25.0, '25'),
        (2.5, '2.5'),
        (0.0, '0'),
        (7, '7'),
        (0.1 * 3, '0.30000000000000004'),
    ])
    def test_renders_like_board_display(self, value, expected):
        assert format_number(value) == expected
