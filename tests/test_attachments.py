import base64

from notevault import attachments

PNG = b"\x89PNG\r\n\x1a\nfake-image-bytes"
PNG_B64 = base64.b64encode(PNG).decode("ascii")


def test_extract_replaces_data_url_with_attachment_link():
    text = f"intro\n\n![shot](data:image/png;base64,{PNG_B64})\n"
    cleaned, files = attachments.extract(text, "abcd1234")
    path = f"attachments/abcd1234-{attachments.content_hash(PNG)}.png"
    assert cleaned == f"intro\n\n![shot]({path})\n"
    assert files == [attachments.Attachment(path, PNG)]


def test_same_payload_gives_same_path_and_one_file():
    text = f"![a](data:image/png;base64,{PNG_B64}) ![b](data:image/png;base64,{PNG_B64})"
    _, files = attachments.extract(text, "abcd1234")
    assert len(files) == 1
    again, _ = attachments.extract(f"![c](data:image/png;base64,{PNG_B64})", "abcd1234")
    assert files[0].path in again


def test_jpeg_and_svg_subtypes_map_to_short_extensions():
    assert attachments.extension_for("jpeg") == "jpg"
    assert attachments.extension_for("svg+xml") == "svg"
    assert attachments.subtype_for("jpg") == "jpeg"
    _, files = attachments.extract(f'<img src="data:image/jpeg;base64,{PNG_B64}" alt="x">', "abcd1234")
    assert files[0].path.endswith(".jpg")


def test_invalid_base64_is_left_alone():
    text = "![x](data:image/png;base64,abc)"
    cleaned, files = attachments.extract(text, "abcd1234")
    assert cleaned == text
    assert files == []


def test_inline_resolves_known_links_and_keeps_missing_ones():
    text = "![a](attachments/abcd1234-aaaaaaaaaaaa.jpg)\n![b](attachments/abcd1234-bbbbbbbbbbbb.png)"
    blobs = {"attachments/abcd1234-aaaaaaaaaaaa.jpg": PNG}
    out = attachments.inline(text, blobs.get)
    assert f"![a](data:image/jpeg;base64,{PNG_B64})" in out
    assert "![b](attachments/abcd1234-bbbbbbbbbbbb.png)" in out
    assert attachments.referenced_paths(text) == [
        "attachments/abcd1234-aaaaaaaaaaaa.jpg", "attachments/abcd1234-bbbbbbbbbbbb.png"
    ]
