import io
import zipfile

import pytest

from jobmatch.errors import ValidationError
from jobmatch.resume_parser import extract_text, extract_text_from_stream, find_resume, load_resume_text

_DOCX_BODY = (
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    "<w:body>"
    "<w:p><w:r><w:t>Jane Doe</w:t></w:r></w:p>"
    "<w:p><w:r><w:t>Python </w:t></w:r><w:r><w:t>developer</w:t></w:r></w:p>"
    "</w:body></w:document>"
)


def _docx_bytes():
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("word/document.xml", _DOCX_BODY)
    return buf.getvalue()


class TestExtract:
    def test_txt(self, tmp_path):
        path = tmp_path / "cv.txt"
        path.write_text("Python developer", encoding="utf-8")
        assert extract_text(path) == "Python developer"

    def test_docx(self):
        text = extract_text_from_stream(io.BytesIO(_docx_bytes()), "cv.DOCX")
        assert text == "Jane Doe\nPython developer"

    def test_broken_docx(self):
        with pytest.raises(ValidationError):
            extract_text_from_stream(io.BytesIO(b"not a zip"), "cv.docx")

    def test_unsupported_format(self):
        with pytest.raises(ValidationError):
            extract_text_from_stream(io.BytesIO(b""), "cv.odt")


class TestFindResume:
    def test_prefers_pdf_then_docx_then_txt(self, tmp_path):
        (tmp_path / "b.txt").write_text("txt")
        (tmp_path / "a.docx").write_bytes(_docx_bytes())
        assert find_resume(tmp_path).name == "a.docx"

    def test_missing_dir(self, tmp_path):
        assert find_resume(tmp_path / "nope") is None
        assert load_resume_text(tmp_path / "nope") is None

    def test_load_text(self, tmp_path):
        (tmp_path / "cv.txt").write_text("  Data analyst  \n")
        assert load_resume_text(tmp_path) == "Data analyst"
