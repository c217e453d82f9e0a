import io
import json

import reader


def test_reader_prints_filtered_page(tmp_path):
    rows = [
        {"id": "a", "type": "message", "summary": "Hello"},
        {"id": "b", "type": "tool", "summary": "Ran linter", "agentId": "sub-1"},
    ]
    (tmp_path / "activity.jsonl").write_text("".join(json.dumps(r) + "\n" for r in rows), encoding="utf-8")

    out = io.StringIO()
    code = reader.run(["--data-dir", str(tmp_path), "--search", "linter"], out=out)
    assert code == 0
    page = json.loads(out.getvalue())
    assert [item["id"] for item in page["items"]] == ["b"]
    assert page["total"] == 1


def test_reader_missing_log_prints_empty_page(tmp_path):
    out = io.StringIO()
    assert reader.run(["--data-dir", str(tmp_path), "--page", "3"], out=out) == 0
    page = json.loads(out.getvalue())
    assert page["items"] == []
    assert page["page"] == 3


def test_reader_reports_store_failure(tmp_path, capsys):
    (tmp_path / "activity.jsonl").write_bytes(b"\xff\xfe bad bytes")
    assert reader.run(["--data-dir", str(tmp_path)], out=io.StringIO()) == 1
    assert "[READER]" in capsys.readouterr().err
