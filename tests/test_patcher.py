from __future__ import annotations

from pathlib import Path

import pytest

from claude_relay import backup
from claude_relay.errors import FormatChangedError, NotFoundError
from claude_relay.mapping import CLI_PATCH_MARKER, backup_path, build_header, to_js_obj
from claude_relay.patcher import apply_patch, insert_header, patch_content

from .samples import SAMPLE_CLI

MAPPINGS = {
    "claude-sonnet-4.5": "claude-sonnet-4-5-20250929",
    "claude-opus-4.6": "claude-opus-4-6",
}


def test_header_serialization_is_deterministic():
    reordered = dict(reversed(list(MAPPINGS.items())))
    assert build_header(MAPPINGS) == build_header(reordered)
    assert to_js_obj(MAPPINGS) == '{"claude-opus-4.6":"claude-opus-4-6","claude-sonnet-4.5":"claude-sonnet-4-5-20250929"}'
    assert build_header(MAPPINGS).startswith(CLI_PATCH_MARKER + "globalThis.__cliModelMap={")


def test_header_goes_before_first_import():
    patched, applied = patch_content(SAMPLE_CLI, MAPPINGS)
    shebang, rest = patched.split("\n", 1)
    assert shebang == "#!/usr/bin/env node"
    assert rest.index(CLI_PATCH_MARKER) < rest.index("import{createRequire")
    assert [p.name for p in applied] == ["streaming-generator", "ansi-strip-model", "client-factory"]


def test_fallback_import_anchor():
    content = 'import fs from "fs";\n' + SAMPLE_CLI.split("\n", 3)[3]
    content = content.replace("import{createRequire", "require(")
    patched = insert_header(content, "/*H*/")
    assert patched.startswith('/*H*/import fs from "fs";')


def test_missing_import_anchor_is_format_change():
    with pytest.raises(FormatChangedError):
        insert_header("var a=1;", "/*H*/")


def test_apply_then_restore_is_byte_identical(cli_file: Path):
    before = cli_file.read_bytes()
    apply_patch(cli_file, MAPPINGS)
    assert cli_file.read_bytes() != before
    assert backup.is_patched(cli_file)

    backup.restore(cli_file)
    assert cli_file.read_bytes() == before
    assert not backup.is_patched(cli_file)


def test_apply_twice_is_idempotent(cli_file: Path):
    apply_patch(cli_file, MAPPINGS)
    first_backup = Path(backup_path(cli_file)).read_bytes()
    first = cli_file.read_text(encoding="utf-8")

    apply_patch(cli_file, MAPPINGS)
    second = cli_file.read_text(encoding="utf-8")

    assert second.count(CLI_PATCH_MARKER) == 1
    assert second == first
    assert Path(backup_path(cli_file)).read_bytes() == first_backup == SAMPLE_CLI.encode("utf-8")


def test_redeploy_with_new_mapping_starts_from_backup(cli_file: Path):
    apply_patch(cli_file, MAPPINGS)
    apply_patch(cli_file, {"claude-haiku-4.5": "haiku-relay"})
    text = cli_file.read_text(encoding="utf-8")
    assert '"claude-haiku-4.5":"haiku-relay"' in text
    assert "claude-sonnet-4-5-20250929" not in text
    assert text.count("B.model=globalThis.__cliMap(B.model);") == 1


def test_zero_matches_writes_nothing(tmp_path: Path):
    path = tmp_path / "cli.js"
    original = 'import{createRequire as X}from"node:module";var a=1;\n'
    path.write_text(original, encoding="utf-8")

    with pytest.raises(FormatChangedError):
        apply_patch(path, MAPPINGS)

    assert path.read_text(encoding="utf-8") == original
    assert not backup.has_backup(path)


def test_patched_live_file_without_backup_is_rejected(cli_file: Path):
    apply_patch(cli_file, MAPPINGS)
    patched = cli_file.read_bytes()
    Path(backup_path(cli_file)).unlink()

    with pytest.raises(FormatChangedError):
        apply_patch(cli_file, MAPPINGS)
    assert cli_file.read_bytes() == patched


def test_restore_without_backup_fails_and_leaves_file(cli_file: Path):
    before = cli_file.read_bytes()
    with pytest.raises(NotFoundError):
        backup.restore(cli_file)
    assert cli_file.read_bytes() == before


def test_restore_is_repeatable(cli_file: Path):
    before = cli_file.read_bytes()
    apply_patch(cli_file, MAPPINGS)
    backup.restore(cli_file)
    backup.restore(cli_file)
    assert cli_file.read_bytes() == before
    assert backup.has_backup(cli_file)


def test_missing_file_is_not_found(tmp_path: Path):
    with pytest.raises(NotFoundError):
        apply_patch(tmp_path / "missing.js", MAPPINGS)


def test_non_utf8_bytes_survive_round_trip(tmp_path: Path):
    path = tmp_path / "cli.js"
    raw = SAMPLE_CLI.encode("utf-8") + b"/*\xff\xfe*/\n"
    path.write_bytes(raw)
    apply_patch(path, MAPPINGS)
    assert b"/*\xff\xfe*/" in path.read_bytes()
    backup.restore(path)
    assert path.read_bytes() == raw


def test_qualifying_function_is_patched_not_the_decoy_with_same_prefix():
    decoy = "async function*foo(A,Q,B){let G=bar(B);return G}"
    target = "async function*foo(A,Q,B){let G=bar(B);yield{model:B.model}}"
    content = 'import{createRequire as X}from"node:module";' + decoy + ";" + "x" * 250 + ";" + target

    patched, applied = patch_content(content, MAPPINGS)

    assert [p.name for p in applied] == ["streaming-generator"]
    assert decoy in patched
    assert patched.endswith(";async function*foo(A,Q,B){B.model=globalThis.__cliMap(B.model);let G=bar(B);yield{model:B.model}}")
