"""
Cost Governor
=============
Per-run spend tracker that gates every oracle call against a hard ceiling.

Contract:
    can_afford(estimated_input_tokens, model)
        Projects the cost of the next call (output assumed to be 80% of
        input) and refuses it when spent + projected would pass the ceiling.
    allows_retry(estimated_input_tokens, model)
        Guard handed to the oracle client so every retried request is
        checked the same way, counting the usage of earlier tries.
    record(input_tokens, output_tokens, model)
        Adds the actual cost of a completed call to the running total.

Invariants:
    - spent only ever grows, and equals the sum of recorded costs
    - the governor never raises: unknown models are priced at the most
      expensive known rate, negative token counts count as zero
    - one governor per run; a fresh run starts again at zero
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, List

from janitor.llm.router import calculate_cost

logger = logging.getLogger(__name__)

OUTPUT_TO_INPUT_RATIO = 0.8


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text or "") / 4)


@dataclass(frozen=True)
class CostEntry:
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float


class CostGovernor:
    """
    Tracks oracle spend for one run.

    Parameters
    ----------
    ceiling_usd : float
        Maximum cumulative spend for the run (default: 0.50).
    estimator : callable
        Maps prompt text to an estimated token count. Exposed so callers
        price prompts the same way the governor does.
    """

    def __init__(
        self,
        ceiling_usd: float = 0.50,
        estimator: Callable[[str], int] = estimate_tokens,
    ) -> None:
        self.ceiling = max(0.0, float(ceiling_usd))
        self.estimator = estimator
        self._spent = 0.0
        self._entries: List[CostEntry] = []
        self.refusals = 0

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    @property
    def spent(self) -> float:
        return self._spent

    @property
    def remaining(self) -> float:
        return max(0.0, self.ceiling - self._spent)

    @property
    def calls(self) -> List[CostEntry]:
        return list(self._entries)

    def estimate(self, text: str) -> int:
        try:
            return max(0, int(self.estimator(text)))
        except Exception as e:
            # A broken estimator must not take the run down; fall back to the default
            logger.warning("Token estimator failed (%s), using character heuristic", e)
            return estimate_tokens(text)

    def projected_cost(self, estimated_input_tokens: int, model: str) -> float:
        input_tokens = max(0, int(estimated_input_tokens))
        output_tokens = math.ceil(input_tokens * OUTPUT_TO_INPUT_RATIO)
        return calculate_cost(model, input_tokens, output_tokens)

    def can_afford(self, estimated_input_tokens: int, model: str, pending_usd: float = 0.0) -> bool:
        """
        Decide whether the next oracle call fits under the ceiling.

        Parameters
        ----------
        estimated_input_tokens : int
            Estimated prompt size in tokens.
        model : str
            Model the call would use.
        pending_usd : float
            Spend already incurred but not yet recorded, e.g. billed
            retries inside one oracle request.

        Returns
        -------
        bool
            False when spent + pending + projected cost would exceed the ceiling.
        """
        projected = self.projected_cost(estimated_input_tokens, model)
        committed = self._spent + max(0.0, pending_usd)
        if committed + projected > self.ceiling:
            self.refusals += 1
            logger.warning(
                "Budget refusal: %s call projected at $%.4f, committed $%.4f of $%.2f",
                model, projected, committed, self.ceiling,
            )
            return False
        return True

    def allows_retry(self, estimated_input_tokens: int, model: str) -> Callable[[int, int], bool]:
        """Guard for OracleClient.complete: may another billed request be sent?"""
        def guard(used_input_tokens: int, used_output_tokens: int) -> bool:
            pending = calculate_cost(model, max(0, used_input_tokens), max(0, used_output_tokens))
            return self.can_afford(estimated_input_tokens, model, pending_usd=pending)
        return guard

    def record(self, input_tokens: int, output_tokens: int, model: str) -> float:
        """Add the actual cost of a completed call; returns that cost."""
        input_tokens = max(0, int(input_tokens or 0))
        output_tokens = max(0, int(output_tokens or 0))
        cost = calculate_cost(model, input_tokens, output_tokens)
        self._spent += cost
        self._entries.append(CostEntry(model, input_tokens, output_tokens, cost))
        logger.debug("Recorded $%.6f for %s (total $%.4f)", cost, model, self._spent)
        return cost
