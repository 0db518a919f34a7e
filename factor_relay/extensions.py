"""
Service wiring — the board client, stores, orchestrator and webhook ingestor.

Built once per app by create_app() and stored on app.extensions['relay'];
routes reach it through get_services(). Nothing is created at import time.
"""
import logging
from dataclasses import dataclass

from flask import current_app

from factor_relay.config import Settings
from factor_relay.database import make_session_factory
from factor_relay.services.audit import AuditLog
from factor_relay.services.calculation import CalculationOrchestrator
from factor_relay.services.factors import FactorStore
from factor_relay.services.monday import MondayClient
from factor_relay.services.webhook_ingestor import WebhookIngestor

logger = logging.getLogger('factor_relay.extensions')

EXTENSION_KEY = 'relay'


@dataclass
class Services:
    settings: Settings
    board: MondayClient
    factors: FactorStore
    audit: AuditLog
    calculator: CalculationOrchestrator
    webhooks: WebhookIngestor


def build_services(settings: Settings, session_factory=None, board=None) -> Services:
    """
    Assemble the component graph.

    session_factory and board can be injected (tests, scripts); otherwise a
    session factory is built from settings.database_url and a MondayClient
    from settings.board.
    """
    if session_factory is None:
        create_schema = settings.database_url.startswith('sqlite')
        session_factory = make_session_factory(settings.database_url, create_schema=create_schema)
    if board is None:
        board = MondayClient(settings.board)

    factors = FactorStore(session_factory)
    audit = AuditLog(session_factory)
    calculator = CalculationOrchestrator(
        board=board,
        factors=factors,
        audit=audit,
        input_column_id=settings.input_column_id,
        result_column_id=settings.result_column_id,
        board_id=settings.board.board_id,
    )
    webhooks = WebhookIngestor(calculator, settings.input_column_id)
    logger.info(
        "Relay wired for board %s (input=%s, result=%s)",
        settings.board.board_id, settings.input_column_id, settings.result_column_id,
    )
    return Services(
        settings=settings,
        board=board,
        factors=factors,
        audit=audit,
        calculator=calculator,
        webhooks=webhooks,
    )


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
