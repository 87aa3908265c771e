"""
Submits lending pool transactions (warnings and liquidations) from the bot account.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from web3 import Web3
from web3.exceptions import TransactionNotFound

from app.loan_monitor.config_loader import ChainConfig
from app.loan_monitor.exceptions import ConfirmationTimeoutError, ExecutorError, SimulationError, SubmissionError
from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.models import LiquidationResult, SubmissionResult

logger = setup_logger()


@dataclass(frozen=True)
class LoanAction:
    """A lending pool function call to submit as a transaction."""

    function: str
    args: Tuple[Any, ...]

    def describe(self) -> str:
        return f"{self.function}({', '.join(str(a) for a in self.args)})"


class TransactionSubmitter:
    """
    Simulate, build, sign, send and confirm a lending pool call.

    Confirmation is polled a bounded number of times so every submission
    ends in a definite success or an exception.
    """

    def __init__(self, config: ChainConfig, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.w3 = config.w3
        self.lending_pool = config.lending_pool
        self.poll_interval = config.risk_parameters.confirmation_poll_interval
        self.max_attempts = config.risk_parameters.confirmation_max_attempts
        self._sleep = sleep

    def submit(self, action: LoanAction) -> SubmissionResult:
        """
        Raises:
            SimulationError: The call reverts in simulation, nothing is sent.
            SubmissionError: The transaction could not be built, signed or sent.
            ConfirmationTimeoutError: No receipt within the attempt cap.
            ExecutorError: The transaction was mined but reverted.
        """
        sender = self.config.BOT_EOA
        contract_fn = getattr(self.lending_pool.functions, action.function)(*action.args)

        try:
            return_value = contract_fn.call({"from": sender})
        except Exception as ex:
            raise SimulationError(f"Simulation of {action.describe()} failed: {ex}") from ex

        logger.info("Executor: Simulated %s, result %s", action.describe(), return_value)

        try:
            tx = self._build_transaction(contract_fn, sender)
            signed_tx = self.w3.eth.account.sign_transaction(tx, self.config.BOT_PRIVATE_KEY)
            tx_hash = Web3.to_hex(self.w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        except Exception as ex:
            raise SubmissionError(f"Submitting {action.describe()} failed: {ex}") from ex

        logger.info("Executor: Sent %s, tx hash %s", action.describe(), tx_hash)

        receipt = self._wait_for_receipt(tx_hash)
        if receipt["status"] != 1:
            raise ExecutorError(f"Transaction {tx_hash} for {action.describe()} reverted")

        logger.info("Executor: %s confirmed in block %s", tx_hash, receipt["blockNumber"])
        return SubmissionResult(
            success=True,
            tx_hash=tx_hash,
            detail=f"confirmed in block {receipt['blockNumber']}",
            return_value=return_value,
        )

    def _build_transaction(self, contract_fn, sender: str) -> Dict[str, Any]:
        nonce = self.w3.eth.get_transaction_count(sender, "pending")
        gas_price = int(self.w3.eth.gas_price * self.config.GAS_PRICE_MULTIPLIER)
        gas = int(contract_fn.estimate_gas({"from": sender}) * self.config.GAS_LIMIT_MULTIPLIER)
        return contract_fn.build_transaction(
            {
                "chainId": self.config.CHAIN_ID,
                "from": sender,
                "nonce": nonce,
                "gas": gas,
                "gasPrice": gas_price,
            }
        )

    def _wait_for_receipt(self, tx_hash: str):
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                logger.debug("Executor: %s not mined yet (attempt %s/%s)", tx_hash, attempt, self.max_attempts)
            except Exception as ex:
                raise ExecutorError(f"Failed to poll receipt for {tx_hash}: {ex}") from ex

            if attempt < self.max_attempts:
                self._sleep(self.poll_interval)

        raise ConfirmationTimeoutError(f"Transaction {tx_hash} not confirmed after {self.max_attempts} attempts")


class WarningExecutor:
    """Issues the next on-chain warning for a borrower."""

    def __init__(self, submitter: TransactionSubmitter):
        self.submitter = submitter

    def issue_warning(self, borrower: str) -> str:
        result = self.submitter.submit(LoanAction("checkAndIssueWarning", (Web3.to_checksum_address(borrower),)))
        return result.tx_hash


class LiquidationExecutor:
    """Liquidates a borrower's loan, paying the reward to the bot account."""

    def __init__(self, submitter: TransactionSubmitter, liquidator: str):
        self.submitter = submitter
        self.liquidator = liquidator

    def liquidate(self, borrower: str) -> LiquidationResult:
        result = self.submitter.submit(
            LoanAction("liquidateLoan", (self.liquidator, Web3.to_checksum_address(borrower)))
        )
        # reward as returned by the simulated call
        return LiquidationResult(
            borrower=borrower,
            success=result.success,
            reward=int(result.return_value or 0),
            tx_hash=result.tx_hash,
        )
