import io
import sys

import pytest

from ariaprobe.__main__ import main

PAGE = (
    "<main><h1>Account</h1>"
    "<form><label for=email>Email</label><input id=email>"
    "<button>Save</button><button>Cancel</button></form>"
    '<p style="display:none"><button>Ghost</button></p></main>'
)


def _run(monkeypatch, *argv, stdin=PAGE):
    monkeypatch.setattr(sys, "argv", ["ariaprobe", *argv])
    monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    main()


def _exit_code(monkeypatch, *argv, stdin=PAGE):
    with pytest.raises(SystemExit) as excinfo:
        _run(monkeypatch, *argv, stdin=stdin)
    return excinfo.value.code


class TestSelection:
    def test_names(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--selector", "button", "--format", "names")
        assert capsys.readouterr().out == 'button "Save"\nbutton "Cancel"\nbutton\n'

    def test_first_and_chains(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--selector", "form >> role=button", "--format", "names", "--first")
        assert capsys.readouterr().out == 'button "Save"\n'

    def test_visible_only(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--selector", "button", "--format", "names", "--visible-only")
        assert capsys.readouterr().out == 'button "Save"\nbutton "Cancel"\n'

    def test_label_engine(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--selector", "internal:label=email", "--format", "html")
        assert capsys.readouterr().out.strip() == '<input id="email">'

    def test_pierce(self, monkeypatch, capsys):
        page = '<div><template shadowrootmode="open"><button>Inside</button></template></div>'
        assert _exit_code(monkeypatch, "-", "--selector", "button", stdin=page) == 1
        _run(monkeypatch, "-", "--selector", "button", "--pierce", "--format", "text", stdin=page)
        assert capsys.readouterr().out == "Inside\n"

    def test_reads_files(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / "page.html"
        path.write_text(PAGE)
        _run(monkeypatch, str(path), "--selector", "h1", "--format", "text")
        assert capsys.readouterr().out == "Account\n"


class TestSnapshots:
    def test_aria(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--selector", "form", "--format", "aria")
        out = capsys.readouterr().out
        assert '- textbox "Email" [ref=' in out
        assert '- button "Save" [ref=' in out
        assert "Ghost" not in out

    def test_tree_interactive_only(self, monkeypatch, capsys):
        _run(monkeypatch, "-", "--format", "tree", "--interactive-only")
        lines = capsys.readouterr().out.splitlines()
        assert [line.split(" ", 1)[1] for line in lines] == [
            'textbox "Email"',
            'button "Save"',
            'button "Cancel"',
            "button",
        ]

    def test_default_output_is_the_document(self, monkeypatch, capsys):
        _run(monkeypatch, "-", stdin="<p>x</p>")
        assert capsys.readouterr().out.startswith("<html>")


class TestExitCodes:
    def test_no_match(self, monkeypatch):
        assert _exit_code(monkeypatch, "-", "--selector", "table") == 1

    @pytest.mark.parametrize("selector", ["div[", "xpath=//[", "bogus=x", " >> "])
    def test_invalid_selector(self, monkeypatch, capsys, selector):
        assert _exit_code(monkeypatch, "-", "--selector", selector) == 2
        assert capsys.readouterr().err.strip()

    def test_missing_path(self, monkeypatch, capsys):
        assert _exit_code(monkeypatch) == 1
        assert "usage:" in capsys.readouterr().err
