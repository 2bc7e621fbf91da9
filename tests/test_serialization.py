"""Tests for summary encoding and device document decoding."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests.helpers import RUN_TS, make_device
from wled_backup.models import BackupOutcome, BackupRun, BackupStatus
from wled_backup.serialization import decode_document, encode_summary, json_default


class TestJsonDefault:
    def test_object_with_to_dict(self):
        class Dummy:
            def to_dict(self):
                return {"key": "value"}

        assert json_default(Dummy()) == {"key": "value"}

    def test_path(self):
        assert json_default(Path("/backup/a.json")) == "/backup/a.json"

    def test_utf8_bytes_as_text(self):
        assert json_default(b"wled") == "wled"

    def test_binary_bytes_as_hex(self):
        assert json_default(b"\xde\xad\xbe\xef") == "deadbeef"

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError, match="Cannot serialize object"):
            json_default(object())


class TestEncodeSummary:
    def test_backup_run(self):
        outcome = BackupOutcome(
            device=make_device(),
            status=BackupStatus.SUCCEEDED,
            duration=1.5,
            paths=(Path("/backup/k_cfg.json"),),
            hostname="Kitchen",
        )
        run = BackupRun(
            started_at=RUN_TS,
            search_window=10,
            out_dir=Path("/backup"),
            outcomes=(outcome,),
            finished_at=RUN_TS,
        )
        data = json.loads(encode_summary(run))
        assert data["succeeded"] == 1
        assert data["started_at"] == "2026-10-19T12:00:00+00:00"
        assert data["outcomes"][0]["hostname"] == "Kitchen"
        assert data["outcomes"][0]["paths"] == ["/backup/k_cfg.json"]

    def test_plain_dict_with_path(self):
        assert json.loads(encode_summary({"out": Path("/b")})) == {"out": "/b"}

    def test_compact_by_default(self):
        assert b"\n" not in encode_summary({"a": {"b": 1}})

    def test_pretty(self):
        text = encode_summary({"a": {"b": 1}}, pretty=True).decode("utf-8")
        assert "\n  " in text

    def test_unknown_type_raises(self):
        with pytest.raises(TypeError):
            encode_summary({"bad": object()})


class TestDecodeDocument:
    def test_object(self):
        assert decode_document(b'{"id":{"name":"Desk"}}') == {"id": {"name": "Desk"}}

    def test_rejects_non_object(self):
        with pytest.raises(TypeError, match="Expected JSON object, got list"):
            decode_document(b"[1, 2]")

    def test_invalid_json_is_value_error(self):
        with pytest.raises(ValueError):
            decode_document(b"{not json")
