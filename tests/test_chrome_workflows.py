import allure
from click.testing import CliRunner

from chrome_workflows import __version__
from chrome_workflows.main import chrome_workflows

pytestmark = [
    allure.epic("Command Line"),
    allure.feature("Version"),
]


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(chrome_workflows, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_verbose_flag_is_accepted(tmp_path, clean_env):
    runner = CliRunner()
    result = runner.invoke(chrome_workflows, ["--verbose", "list", "--path", str(tmp_path)])
    assert result.exit_code == 0
    assert "No workflows found." in result.output
