import pytest

from src.core.multisig.execution import ActionSubmissionError
from src.infrastructure.execution import SimulatedActionExecutor
from tests.factories import proposal_record, wallet_record


def test_simulated_executor_reference_is_deterministic():
    executor = SimulatedActionExecutor()
    proposal = proposal_record()

    first = executor.submit(proposal=proposal, wallet=wallet_record())
    second = executor.submit(proposal=proposal, wallet=wallet_record())

    assert first == second
    assert first.startswith("sim_")
    assert executor.submissions == [proposal.proposal_id, proposal.proposal_id]


def test_simulated_executor_reference_depends_on_payload():
    executor = SimulatedActionExecutor()
    proposal = proposal_record()
    changed = proposal.model_copy(update={"action_payload": "transfer:2:SOL"})

    assert executor.submit(proposal=proposal, wallet=wallet_record()) != executor.submit(
        proposal=changed, wallet=wallet_record()
    )


def test_simulated_executor_failure_mode_records_attempt():
    executor = SimulatedActionExecutor(fail_with="backend offline")

    with pytest.raises(ActionSubmissionError, match="backend offline"):
        executor.submit(proposal=proposal_record(), wallet=wallet_record())
    assert executor.submissions == ["msp_repo_1"]
