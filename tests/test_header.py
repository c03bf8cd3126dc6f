from datetime import UTC, datetime

import pytest

from notevault import header
from notevault.errors import MalformedRecord
from notevault.models import VaultMetadata


def _meta(**kw):
    base = dict(
        id="6f1c2b7e-0000-4000-8000-000000000001",
        created_at=datetime(2026, 1, 2, 10, 0, tzinfo=UTC),
        updated_at=datetime(2026, 1, 2, 10, 5, 30, 123000, tzinfo=UTC),
    )
    base.update(kw)
    return VaultMetadata(**base)


def test_encode_writes_header_then_blank_line():
    out = header.encode(_meta(tags=["ideas", "work"], pinned=True, pin_order=2), "# Hi\n")
    assert out.splitlines()[:8] == [
        "---",
        "id: 6f1c2b7e-0000-4000-8000-000000000001",
        "created_at: 2026-01-02T10:00:00.000Z",
        "updated_at: 2026-01-02T10:05:30.123Z",
        "tags: [ideas, work]",
        "pinned: true",
        "pin_order: 2",
        "---",
    ]
    assert out.endswith("---\n\n# Hi\n")


def test_unpinned_and_untagged_keys_are_omitted():
    out = header.encode(_meta(), "body")
    assert "pinned" not in out
    assert "tags" not in out
    assert "last_opened_at" not in out


def test_decode_reads_back_fields():
    meta, body = header.decode(header.encode(_meta(tags=["a"], pinned=True, pin_order=0), "text\n"))
    assert meta.id == "6f1c2b7e-0000-4000-8000-000000000001"
    assert meta.updated_at == datetime(2026, 1, 2, 10, 5, 30, 123000, tzinfo=UTC)
    assert meta.tags == ["a"]
    assert meta.pinned is True and meta.pin_order == 0
    assert body == "text\n"


def test_no_header_means_whole_text_is_body():
    meta, body = header.decode("just some text\n")
    assert meta.id is None
    assert body == "just some text\n"


def test_missing_closing_marker_falls_back_to_body():
    src = "---\nid: abc\nstill writing"
    meta, body = header.decode(src)
    assert meta.id is None
    assert body == src


def test_unknown_keys_are_ignored():
    meta, body = header.decode("---\nid: abc\ncolor: blue\nno colon here\n---\n\nbody")
    assert meta.id == "abc"
    assert body == "body"


def test_bad_timestamp_is_malformed():
    with pytest.raises(MalformedRecord) as exc:
        header.decode("---\nid: abc\ncreated_at: yesterday\n---\n\nbody", "x.md")
    assert exc.value.filename == "x.md"


def test_encode_requires_id():
    with pytest.raises(ValueError):
        header.encode(VaultMetadata(), "body")
