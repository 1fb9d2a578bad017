from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """An expected business failure (card declined, service busy, attempt timed out)."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


StepResult = Union[Success[T], Failure]


def result_to_dict(result: "StepResult") -> Dict[str, Any]:
    """Serialize a StepResult whose success value is a pydantic model."""
    if isinstance(result, Success):
        return {"ok": True, "value": result.value.model_dump(mode="json")}
    return {"ok": False, "reason": result.reason}


def result_from_dict(data: Dict[str, Any], parse: Callable[[Dict[str, Any]], T]) -> "StepResult":
    if data.get("ok"):
        return Success(parse(data["value"]))
    return Failure(data.get("reason") or "unknown failure")
