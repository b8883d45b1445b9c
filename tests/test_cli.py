import io

import pytest

from testplan_toolkit import cli
from testplan_toolkit.core.importers import JmxImporter


@pytest.fixture
def shell(shop_jmx):
    return cli.TestPlanShell(JmxImporter().import_file(shop_jmx))


def test_tree_command_prints_outline(shop_jmx, capsys):
    assert cli.main(["tree", str(shop_jmx)]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "+ Shop"
    assert out[1] == "  + Users"
    assert "    - Login" in out
    assert "      . token" in out
    assert "    . Think Time" in out


def test_tree_command_reports_bad_file(tmp_path, capsys):
    assert cli.main(["tree", str(tmp_path / "missing.jmx")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_wrap_command_writes_default_output(shop_jmx, tmp_path, capsys):
    plan = tmp_path / "shop.jmx"
    plan.write_bytes(shop_jmx.read_bytes())

    assert cli.main(["wrap", str(plan)]) == 0

    out = capsys.readouterr().out
    assert "Successfully grouped 4 samplers into 2 Transaction Controllers" in out
    wrapped = tmp_path / "shop_wrapped.jmx"
    assert wrapped.exists()
    users = JmxImporter().import_file(wrapped).root.find_by_name("Users")
    assert [c.display_name for c in users.children] == [
        "Transaction - Login",
        "Think Time",
        "Transaction - Checkout",
    ]


def test_wrap_command_with_explicit_output(shop_jmx, tmp_path):
    target = tmp_path / "custom.jmx"

    assert cli.main(["wrap", str(shop_jmx), "-t", "Users", "-o", str(target)]) == 0
    assert target.exists()


def test_wrap_command_unknown_thread_group(shop_jmx, tmp_path, capsys):
    code = cli.main(["wrap", str(shop_jmx), "-t", "Nope", "-o", str(tmp_path / "x.jmx")])

    assert code == 1
    assert "Thread Group not found" in capsys.readouterr().err
    assert not (tmp_path / "x.jmx").exists()


def test_wrap_command_unwritable_output(shop_jmx, tmp_path, capsys):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")

    code = cli.main(["wrap", str(shop_jmx), "-o", str(blocker / "out.jmx")])

    assert code == 1
    assert "Could not save test plan" in capsys.readouterr().err


def test_shell_session(shop_jmx, tmp_path, monkeypatch, capsys):
    target = tmp_path / "session.jmx"
    commands = "\n".join(["@wrap", "undo", "redo", "redo", f"save {target}", "quit", "tree"]) + "\n"
    monkeypatch.setattr("sys.stdin", io.StringIO(commands))

    assert cli.main(["shell", str(shop_jmx)]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("Successfully grouped 4 samplers")
    assert out[1] == "Successfully unwrapped 4 samplers."
    assert out[2] == "Successfully rewrapped 4 samplers."
    assert out[3] == "Nothing to redo."
    assert out[4] == f"Saved test plan to {target}."
    assert len(out) == 5
    assert target.exists()


def test_shell_wrap_needs_thread_group(shell):
    assert shell.execute("wrap Nope") == (
        "Please select a Thread Group in the test plan before using the @wrap command."
    )
    assert shell.execute("wrap Users").startswith("Successfully grouped")


def test_shell_second_wrap_finds_no_samplers(shell):
    shell.execute("wrap")
    assert shell.execute("wrap") == "No samplers found in the selected Thread Group."


def test_shell_misc_commands(shell):
    assert shell.execute("") == ""
    assert shell.execute("   ") == ""
    assert shell.execute("undo") == "Nothing to undo."
    assert "Unknown command 'dance'" in shell.execute("dance")
    assert shell.execute("help").startswith("Commands:")
    assert shell.execute('wrap "Users').startswith("Could not parse command")


def test_shell_save_defaults_to_source(shop_jmx, tmp_path):
    plan = tmp_path / "shop.jmx"
    plan.write_bytes(shop_jmx.read_bytes())
    shell = cli.TestPlanShell(JmxImporter().import_file(plan))
    shell.execute("wrap")

    assert shell.execute("save") == f"Saved test plan to {plan}."
    reloaded = JmxImporter().import_file(plan)
    assert reloaded.root.find_by_name("Transaction - Login") is not None


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])
    assert exc_info.value.code == 0
    assert capsys.readouterr().out.strip()
