"""
Script predicate interface

The script runtime itself lives outside this package. A ScriptEvaluator
receives the script text and one resource and answers whether the
resource matches; ScriptPredicate wraps it and normalizes the answer.
"""

from typing import Any, Mapping, Optional, Protocol

from ..errors import PredicateEvaluationError
from ..models import Resource
from ..utils.logger import get_logger

logger = get_logger("ScriptPredicate")


class ScriptEvaluator(Protocol):
    """
    External script runtime

    evaluate() returns either a bool or a mapping with a boolean
    "matching" entry, and may raise on failure or timeout.
    """

    def evaluate(self, script: str, resource: Resource) -> Any:
        ...


def interpret_result(result: Any) -> bool:
    """
    Read the "matching" verdict out of a script result

    Raises:
        PredicateEvaluationError: if the result has an unexpected shape
    """
    if isinstance(result, bool):
        return result
    if isinstance(result, Mapping):
        if "matching" not in result:
            raise PredicateEvaluationError("script result has no 'matching' field")
        matching = result["matching"]
        if not isinstance(matching, bool):
            raise PredicateEvaluationError(
                f"script result 'matching' must be a boolean, got {type(matching).__name__}"
            )
        return matching
    raise PredicateEvaluationError(
        f"unexpected script result of type {type(result).__name__}"
    )


class ScriptPredicate:
    """
    Runs a script against single resources through a ScriptEvaluator
    """

    def __init__(self, evaluator: Optional[ScriptEvaluator]):
        self.evaluator = evaluator

    def matches(self, script: str, resource: Resource) -> bool:
        """
        Evaluate script on resource

        Args:
            script: Script text from the constraint
            resource: Candidate resource

        Returns:
            True if the script reports a match

        Raises:
            PredicateEvaluationError: on any evaluator failure, timeout
                                      included, or a malformed result
        """
        if self.evaluator is None:
            raise PredicateEvaluationError("constraint has a script but no script evaluator is configured")

        try:
            result = self.evaluator.evaluate(script, resource)
        except PredicateEvaluationError:
            raise
        except Exception as e:
            raise PredicateEvaluationError(f"script evaluation failed on {resource}: {e}") from e

        matching = interpret_result(result)
        logger.debug(f"Script on {resource}: matching={matching}")
        return matching
