from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

ADD_KEYS = ("productId", "quantity")
UPDATE_KEYS = ("productId", "quantity")
REMOVE_KEYS = ("productId",)

_ACTIONS = {
    "POST": "adding to cart",
    "PUT": "modifying cart",
    "DELETE": "modifying cart",
}


def missing_keys(payload: Any, required: Sequence[str]) -> List[str]:
    """Required keys absent from (or null in) the request body, in declaration order."""
    if not isinstance(payload, Mapping):
        return list(required)
    return [key for key in required if payload.get(key) is None]


def malformed_request_message(method: str, missing: Sequence[str]) -> str:
    action = _ACTIONS.get(method.upper(), "modifying cart")
    quoted = [f"'{key}'" for key in missing]
    if len(quoted) == 1:
        keys = f"required key {quoted[0]} was"
    else:
        keys = "required keys " + ", ".join(quoted[:-1]) + f" and {quoted[-1]} were"
    return f"Malformed {method.upper()} request when {action}: {keys} missing"


@dataclass
class LineItemCommand:
    product_id: str
    quantity: Optional[int] = None

    @staticmethod
    def from_validated(data: Dict[str, Any]) -> "LineItemCommand":
        quantity = data.get("quantity")
        return LineItemCommand(
            product_id=str(data["productId"]).strip(),
            quantity=int(quantity) if quantity is not None else None,
        )
