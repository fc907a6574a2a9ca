from typing import Optional


def derive_identity(type_name: str, method_name: Optional[str] = None) -> str:
    """Return the unique database identity for a test class, or one of its methods.

    ``("OrderTests", None)`` gives ``"OrderTests"`` and
    ``("OrderTests", "PlacesOrderOk")`` gives ``"OrderTests.PlacesOrderOk"``.
    Nothing is escaped here; the descriptor builder rejects names the engine
    cannot use.
    """
    if not type_name:
        raise ValueError("type_name must be a non-empty test class name")
    if method_name:
        return f"{type_name}.{method_name}"
    return type_name
