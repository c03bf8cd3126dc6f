import base64

from notevault import header
from notevault.export import export_all


async def test_export_writes_notes_and_linked_attachments(store, fs):
    payload = base64.b64encode(b"pixels").decode()
    pic = await store.create(f"# Pic\n\n![p](data:image/png;base64,{payload})\n")
    plain = await store.create("# Plain\n")
    await store.set_tags(plain.id, ["work"])
    await store.write(plain.id, "# Renamed plain\n")

    report = await export_all(store, "/export")

    assert sorted(report.notes) == sorted([f"pic-{pic.id8}.md", f"renamed-plain-{plain.id8}.md"])
    [rel] = report.attachments
    assert rel.startswith(f"attachments/{pic.id8}-")
    assert fs.files[f"/export/{rel}"][0] == b"pixels"
    assert report.missing == []

    meta, body = header.decode(fs.files[f"/export/renamed-plain-{plain.id8}.md"][0].decode("utf-8"))
    assert meta.id == plain.id
    assert meta.tags == ["work"]
    assert body == "# Renamed plain\n"


async def test_export_reports_missing_attachment(store, fs):
    payload = base64.b64encode(b"gone").decode()
    note = await store.create(f"# Pic\n\n![p](data:image/png;base64,{payload})\n")
    [path] = [k for k in fs.files if k.startswith("/vault/attachments/")]
    await fs.delete_file(path)

    report = await export_all(store, "/export")
    assert report.notes == [f"pic-{note.id8}.md"]
    assert report.attachments == []
    assert report.missing == [path.removeprefix("/vault/")]


async def test_export_of_empty_vault_creates_folder(store, fs):
    report = await export_all(store, "/export")
    assert report.notes == []
    assert fs.exists("/export/attachments")
