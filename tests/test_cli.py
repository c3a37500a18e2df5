"""Tests for the command-line interface."""

import json
import os

import pytest

from pyjomap.classreader import ClassPath
from pyjomap.cli import main

from conftest import ClassFileBuilder, write_classes, write_jar


SOURCE = "\n".join([
    "package a;",                   # 1
    "",                             # 2
    "public class Point {",         # 3
    "    private int x;",           # 4
    "    public int getX() {",      # 5
    "        return this.x;",       # 6
    "    }",                        # 7
    "}",                            # 8
])


def point_bytes():
    builder = ClassFileBuilder("a/Point")
    builder.add_field("x", "I")
    builder.add_method("getX", "()I", local_variables=[("this", "La/Point;")])
    return builder.build()


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "Point.java"
    path.write_text(SOURCE)
    return path


@pytest.fixture
def jar(tmp_path):
    return write_jar(tmp_path / "point.jar", {"a/Point": point_bytes()})


def run(capsys, *argv):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


class TestParseCommand:
    def test_prints_ast(self, capsys, source_file):
        data = run(capsys, "parse", str(source_file))
        assert data["_type"] == "CompilationUnit"
        assert data["types"][0]["name"] == "Point"
        assert data["types"][0]["name_range"] == [3, 14, 3, 18]

    def test_missing_file(self, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["parse", str(tmp_path / "Missing.java")])
        assert exc.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_syntax_error(self, capsys, tmp_path):
        path = tmp_path / "Broken.java"
        path.write_text("class {")
        with pytest.raises(SystemExit) as exc:
            main(["parse", str(path)])
        assert exc.value.code == 1
        assert "Error parsing" in capsys.readouterr().err


class TestRegionsCommand:
    def test_jar_classpath(self, capsys, source_file, jar):
        data = run(capsys, "regions", str(source_file), "-cp", str(jar))
        assert data["class"] == "a/Point"
        assert data["classes"] == [{"name": "a/Point", "ranges": [[3, 14, 3, 18]]}]
        assert data["members"] == [
            {"owner": "a/Point", "name": "getX", "descriptor": "()I", "kind": "method",
             "ranges": [[5, 16, 5, 19]]},
            {"owner": "a/Point", "name": "x", "descriptor": "I", "kind": "field",
             "ranges": [[4, 17, 4, 17], [6, 21, 6, 21]]},
        ]

    def test_directory_classpath(self, capsys, source_file, tmp_path):
        classes = write_classes(tmp_path / "classes", {"a/Point": point_bytes()})
        data = run(capsys, "regions", str(source_file), "--classpath", str(classes))
        assert [m["name"] for m in data["members"]] == ["getX", "x"]

    def test_class_not_on_classpath(self, capsys, source_file, tmp_path):
        data = run(capsys, "regions", str(source_file), "--class", "a.Nowhere")
        assert data["class"] == "a/Nowhere"
        assert data["members"] == []

    def test_invalid_classpath_entry(self, capsys, source_file, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["regions", str(source_file), "-cp", str(tmp_path / "nothing")])
        assert exc.value.code == 1
        assert "Invalid classpath entry" in capsys.readouterr().err

    def test_source_without_types(self, capsys, tmp_path):
        path = tmp_path / "Empty.java"
        path.write_text("package a;\n")
        with pytest.raises(SystemExit) as exc:
            main(["regions", str(path)])
        assert exc.value.code == 1
        assert "pass --class" in capsys.readouterr().err

    def test_classpath_closed_after_error(self, capsys, monkeypatch, source_file, jar, tmp_path):
        closed = []
        close = ClassPath.close

        def recording_close(classpath):
            closed.append(len(classpath.entries))
            close(classpath)

        monkeypatch.setattr(ClassPath, "close", recording_close)
        entries = os.pathsep.join([str(jar), str(tmp_path / "nothing")])
        with pytest.raises(SystemExit):
            main(["regions", str(source_file), "-cp", entries])
        assert closed == [1]


class TestLookupCommand:
    def test_member(self, capsys, source_file, jar):
        data = run(capsys, "lookup", str(source_file), "-cp", str(jar), "--line", "6", "--column", "21")
        assert data["class"] is None
        assert data["member"] == {"owner": "a/Point", "name": "x", "descriptor": "I", "kind": "field"}

    def test_class(self, capsys, source_file, jar):
        data = run(capsys, "lookup", str(source_file), "-cp", str(jar), "--line", "3", "--column", "15")
        assert data["class"] == "a/Point"
        assert data["member"] is None

    def test_position_requires_line_and_column(self, capsys, source_file):
        with pytest.raises(SystemExit) as exc:
            main(["lookup", str(source_file), "--line", "3"])
        assert exc.value.code == 2


class TestMain:
    def test_no_command(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 1
        assert "usage" in capsys.readouterr().out
