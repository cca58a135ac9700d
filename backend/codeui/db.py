# Process-local key-value store; default backing storage for StylePersistence
import threading
from typing import List, Optional

_values: dict[str, str] = {}
_lock = threading.Lock()


def get(key: str) -> Optional[str]:
    """Stored text for ``key``, or None"""
    with _lock:
        return _values.get(key)


def set(key: str, value: str) -> bool:
    if not isinstance(value, str):
        raise TypeError(f"db values must be serialized text, got {type(value).__name__}")
    with _lock:
        _values[key] = value
    return True


def delete(key: str):
    """Missing keys are ignored"""
    with _lock:
        _values.pop(key, None)


def clear():
    with _lock:
        _values.clear()


def list_keys() -> List[str]:
    with _lock:
        return sorted(_values)
