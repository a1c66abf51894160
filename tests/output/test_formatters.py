"""Tests for human and JSON result rendering."""

from __future__ import annotations

import json

from closuredeps.output.console import create_console, get_output
from closuredeps.output.formatters import format_result
from closuredeps.services.result import ServiceError, ServiceResult


class TestOrderOutput:
    def test_one_path_per_line(self) -> None:
        result = ServiceResult(
            ok=True,
            op="order",
            data={"entry": None, "count": 2, "paths": ["/src/base.js", "/src/app.js"]},
        )
        assert format_result(result) == "/src/base.js\n/src/app.js"

    def test_long_paths_not_wrapped(self) -> None:
        path = "/" + "x" * 300 + ".js"
        result = ServiceResult(ok=True, op="order", data={"paths": [path]})
        assert format_result(result) == path


class TestGenericOutput:
    def test_ok_fields(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"module_count": 4, "count": 0, "problems": []})
        output = format_result(result)
        assert output.splitlines()[0] == "OK check"
        assert "module_count: 4" in output
        assert "problems" not in output

    def test_error_with_problems(self) -> None:
        result = ServiceResult(
            ok=False,
            op="check",
            data={
                "problems": [
                    {"code": "MISSING_BASE", "message": 'No base module providing "goog" found', "detail": {}},
                ]
            },
            error=ServiceError(code="GRAPH_INVALID", message="1 problem(s) found"),
        )
        lines = format_result(result).splitlines()
        assert lines[0] == "ERROR check 1 problem(s) found"
        assert "MISSING_BASE" in lines[1]

    def test_error_detail(self) -> None:
        result = ServiceResult(
            ok=False,
            op="order",
            error=ServiceError(code="UNKNOWN_ENTRY_POINT", message="nope", detail={"path": "/x.js"}),
        )
        output = format_result(result)
        assert output.startswith("ERROR order nope")
        assert "path: /x.js" in output


class TestJsonOutput:
    def test_full_model(self) -> None:
        result = ServiceResult(ok=True, op="order", data={"paths": ["/a.js"]})
        payload = json.loads(format_result(result, json_output=True))
        assert payload["ok"] is True
        assert payload["op"] == "order"
        assert payload["data"]["paths"] == ["/a.js"]


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True, width=40)
        console.print("hello")
        assert get_output(console) == "hello\n"
