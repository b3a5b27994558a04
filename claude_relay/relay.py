"""Model listing from the relay endpoint and mapping suggestions."""

from __future__ import annotations

import httpx

from .errors import UpstreamError
from .models import ModelMapping, RelayModel

TIMEOUT = 15.0

OPUS_KEYWORDS = ("opus-4-6", "opus-4-5", "opus")
# the main model slot takes any thinking variant first
MAIN_KEYWORDS = ("thinking", "opus-4-6", "opus-3-5", "opus")
SONNET_KEYWORDS = ("sonnet-4-5", "sonnet-4", "sonnet-3-5", "sonnet")
HAIKU_KEYWORDS = ("haiku-4-5", "haiku-3-5", "haiku")


def models_url(base_url: str) -> str:
    base = base_url.rstrip("/")
    if base.endswith("/v1"):
        return f"{base}/models"
    return f"{base}/v1/models"


def fetch_models(base_url: str, api_key: str, client: httpx.Client | None = None) -> list[RelayModel]:
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
    own = client is None
    client = client or httpx.Client(timeout=TIMEOUT)
    try:
        resp = client.get(models_url(base_url), headers=headers)
    except httpx.HTTPError as exc:
        raise UpstreamError(f"relay unreachable: {exc}") from exc
    finally:
        if own:
            client.close()

    if resp.status_code != 200:
        raise UpstreamError(f"relay returned HTTP {resp.status_code}")
    try:
        data = resp.json().get("data") or []
        found = [RelayModel.model_validate(item) for item in data]
    except (ValueError, AttributeError) as exc:
        raise UpstreamError(f"decode response: {exc}") from exc
    return sorted(found, key=lambda m: m.id)


def find_best(ids: list[str], keywords: tuple[str, ...]) -> str:
    for kw in keywords:
        matches = [i for i in ids if kw in i]
        if matches:
            # thinking variants first, then the most specific (longest) id
            matches.sort(key=lambda i: ("thinking" not in i, -len(i)))
            return matches[0]
    return ""


def suggest_mappings(available: list[RelayModel]) -> list[ModelMapping]:
    ids = [m.id for m in available]
    mappings: list[ModelMapping] = []
    for vscode_id, keywords in (
        ("claude-opus-4.6", MAIN_KEYWORDS),
        ("claude-sonnet-4.5", SONNET_KEYWORDS),
        ("claude-haiku-4.5", HAIKU_KEYWORDS),
    ):
        best = find_best(ids, keywords)
        if best:
            mappings.append(ModelMapping(vscode_id=vscode_id, relay_id=best))
    return mappings


def suggest_defaults(available: list[RelayModel]) -> tuple[str, str, str]:
    ids = [m.id for m in available]
    return find_best(ids, OPUS_KEYWORDS), find_best(ids, SONNET_KEYWORDS), find_best(ids, HAIKU_KEYWORDS)
