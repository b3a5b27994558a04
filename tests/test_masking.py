from __future__ import annotations

from claude_relay.server import MASKED_KEY_PLACEHOLDER, is_masked_key, mask_api_key


def test_long_key_keeps_prefix():
    key = "sk-ANT-abcdef1234567890"
    masked = mask_api_key(key)
    assert masked[:8] == key[:8]
    assert set(masked[8:]) == {"*"}
    assert len(masked) == len(key)
    assert is_masked_key(masked)


def test_short_key_uses_sentinel():
    assert mask_api_key("sk-1") == MASKED_KEY_PLACEHOLDER
    assert is_masked_key(MASKED_KEY_PLACEHOLDER)


def test_empty_key_stays_empty():
    assert mask_api_key("") == ""
    assert not is_masked_key("")


def test_real_keys_are_not_masked():
    assert not is_masked_key("sk-ANT-abcdef1234567890")
    assert not is_masked_key("****")
    assert not is_masked_key("sk-*abc")
