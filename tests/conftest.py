"""Shared test fixtures."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from factor_relay.config import BoardClientConfig, RetryConfig, Settings
from factor_relay.database import Base
from factor_relay.errors import RemoteUnreachable
from factor_relay.services.audit import AuditLog
from factor_relay.services.calculation import CalculationOrchestrator
from factor_relay.services.factors import FactorStore
from factor_relay.services.monday import RemoteItem
from factor_relay.services.webhook_ingestor import WebhookIngestor

INPUT_COLUMN = 'numbers_input'
RESULT_COLUMN = 'numbers_result'
BOARD_ID = '4242'


class FakeBoard:
    """In-memory stand-in for MondayClient, keyed by (item_id, column_id)."""

    def __init__(self):
        self.columns = {}
        self.writes = []
        self.acknowledge = True
        self.read_error = None
        self.write_error = None
        self.items = []

    def set_input(self, item_id, text):
        self.columns[(str(item_id), INPUT_COLUMN)] = text

    def fetch_column_value(self, item_id, column_id):
        if self.read_error is not None:
            raise self.read_error
        return self.columns.get((str(item_id), column_id))

    def write_column_value(self, item_id, column_id, value, board_id=None):
        if self.write_error is not None:
            raise self.write_error
        self.writes.append((str(item_id), column_id, value, board_id))
        if self.acknowledge:
            self.columns[(str(item_id), column_id)] = value
        return self.acknowledge

    def fetch_board_items(self, board_id=None):
        if self.read_error is not None:
            raise self.read_error
        return list(self.items)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, shared across sessions."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import factor_relay.models.factor  # noqa: F401
    import factor_relay.models.history  # noqa: F401
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(
        board=BoardClientConfig(
            api_token='test-token',
            board_id=BOARD_ID,
            api_url='https://api.monday.test/v2',
            timeout=5.0,
            retry=RetryConfig(max_retries=3, base_delay=1.0, max_delay=10.0, backoff_factor=2.0),
        ),
        input_column_id=INPUT_COLUMN,
        result_column_id=RESULT_COLUMN,
        database_url='sqlite://',
    )


@pytest.fixture
def fake_board():
    return FakeBoard()


@pytest.fixture
def factor_store(session_factory):
    return FactorStore(session_factory)


@pytest.fixture
def audit_log(session_factory):
    return AuditLog(session_factory)


@pytest.fixture
def calculator(fake_board, factor_store, audit_log):
    return CalculationOrchestrator(
        board=fake_board,
        factors=factor_store,
        audit=audit_log,
        input_column_id=INPUT_COLUMN,
        result_column_id=RESULT_COLUMN,
        board_id=BOARD_ID,
    )


@pytest.fixture
def ingestor(calculator):
    return WebhookIngestor(calculator, INPUT_COLUMN)


@pytest.fixture
def app(settings, session_factory, fake_board):
    """Flask test app wired to the in-memory store and the fake board."""
    from factor_relay import create_app
    from factor_relay.extensions import build_services
    services = build_services(settings, session_factory=session_factory, board=fake_board)
    app = create_app(services=services)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_item():
    """Factory fixture — builds a RemoteItem with an input column."""
    def _make(item_id='123', name='Widget', input_text='10'):
        return RemoteItem.from_dict({
            'id': item_id,
            'name': name,
            'column_values': [
                {'id': INPUT_COLUMN, 'text': input_text, 'value': f'"{input_text}"', 'type': 'numbers'},
            ],
        })
    return _make


@pytest.fixture
def unreachable():
    return RemoteUnreachable('Monday API is unreachable', attempts=4)
