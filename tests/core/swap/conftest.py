import pytest

from swapdesk.config import Settings
from swapdesk.core.swap import OperationKind, SwapOrchestrator, TransactionStateTracker

from helpers import (
    ACCOUNT,
    RESET_DELAY,
    ROUTER,
    TOKEN_A,
    TOKEN_B,
    ControlledSender,
    FakeTokenQuery,
)


@pytest.fixture
def config() -> Settings:
    return Settings(reset_delay_seconds=RESET_DELAY, router_address=ROUTER, swap_deadline_seconds=120)


@pytest.fixture
def approval_sender() -> ControlledSender:
    return ControlledSender()


@pytest.fixture
def swap_sender() -> ControlledSender:
    return ControlledSender()


@pytest.fixture
def token_query() -> FakeTokenQuery:
    return FakeTokenQuery()


@pytest.fixture
def orchestrator(config, approval_sender, swap_sender, token_query) -> SwapOrchestrator:
    """Orchestrator with an account, AAA -> BBB selected and a fixed clock."""
    orch = SwapOrchestrator(
        TOKEN_A,
        TransactionStateTracker(OperationKind.APPROVE, approval_sender),
        TransactionStateTracker(OperationKind.SWAP, swap_sender),
        token_query,
        account=ACCOUNT,
        config=config,
        clock=lambda: 1_000.0,
    )
    orch.select_to_token(TOKEN_B)
    return orch
