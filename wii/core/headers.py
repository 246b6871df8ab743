from typing import Dict
from urllib.parse import quote

from wii.core.config import settings


def _prefix() -> str:
    return f"X-{settings.CLIENT_APP_NAME}"


def alert(message: str, param: str) -> Dict[str, str]:
    return {f"{_prefix()}-alert": message, f"{_prefix()}-params": quote(str(param))}


def entity_creation_alert(entity_name: str, param) -> Dict[str, str]:
    return alert(f"A new {entity_name} is created with identifier {param}", param)


def entity_update_alert(entity_name: str, param) -> Dict[str, str]:
    return alert(f"A {entity_name} is updated with identifier {param}", param)


def entity_deletion_alert(entity_name: str, param) -> Dict[str, str]:
    return alert(f"A {entity_name} is deleted with identifier {param}", param)


def failure_alert(entity_name: str, error_key: str) -> Dict[str, str]:
    return {f"{_prefix()}-error": f"error.{error_key}", f"{_prefix()}-params": entity_name}
