from pathlib import Path

import pytest

from background_service import InvalidConfigurationError, ServiceConfig
from background_service.config import DEFAULT_LOG_PATH


@pytest.mark.parametrize(
    ("given", "expected"),
    [
        (
            ServiceConfig(
                bin_path="../output/bin/alertmanager",
                args=["-l", "9999"],
                log_path="../output/conf/service.yml",
            ),
            ("../output/bin/alertmanager", ("-l", "9999"), "../output/conf/service.yml"),
        ),
        (
            ServiceConfig(bin_path="../output/bin/alertmanager", args=["-l", "9999"]),
            ("../output/bin/alertmanager", ("-l", "9999"), "run.log"),
        ),
        (
            ServiceConfig(bin_path="bin/alertmanager"),
            ("bin/alertmanager", (), "run.log"),
        ),
        (
            ServiceConfig(bin_path="bin/alertmanager", args=None, log_path=""),
            ("bin/alertmanager", (), "run.log"),
        ),
    ],
)
def test_config_defaults(given: ServiceConfig, expected: tuple) -> None:
    assert (given.bin_path, given.args, given.log_path) == expected


def test_empty_bin_path_is_rejected() -> None:
    with pytest.raises(InvalidConfigurationError):
        ServiceConfig(bin_path="")


def test_invalid_configuration_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="binary path"):
        ServiceConfig(bin_path="", args=["-l", "9999"])


def test_args_pass_through_in_order() -> None:
    config = ServiceConfig(bin_path="nc", args=["-l", "9999", "-k"])

    assert config.command == ("nc", "-l", "9999", "-k")
    assert config.describe() == "nc -l 9999 -k > run.log"


def test_config_is_immutable() -> None:
    config = ServiceConfig(bin_path="nc")

    with pytest.raises(AttributeError):
        config.bin_path = "other"  # type: ignore[misc]


def test_from_env_reads_service_variables(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("SERVICE_BIN_PATH", "nc")
    clean_env.setenv("SERVICE_ARGS", "-l 9999 --name 'two words'")
    clean_env.setenv("SERVICE_LOG_PATH", "/tmp/nc.log")

    config = ServiceConfig.from_env("/nonexistent/.env")

    assert config.bin_path == "nc"
    assert config.args == ("-l", "9999", "--name", "two words")
    assert config.log_path == "/tmp/nc.log"


def test_from_env_loads_dotenv_file(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("SERVICE_BIN_PATH=sleep\nSERVICE_ARGS=30\n")

    config = ServiceConfig.from_env(env_file)

    assert config.command == ("sleep", "30")
    assert config.log_path == DEFAULT_LOG_PATH


def test_from_env_without_binary_fails(clean_env: pytest.MonkeyPatch) -> None:
    with pytest.raises(InvalidConfigurationError):
        ServiceConfig.from_env("/nonexistent/.env")


def test_string_args_are_rejected() -> None:
    with pytest.raises(InvalidConfigurationError, match="sequence of strings"):
        ServiceConfig(bin_path="sleep", args="30")


def test_from_env_with_unbalanced_quote_fails(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("SERVICE_BIN_PATH", "nc")
    clean_env.setenv("SERVICE_ARGS", "'unbalanced")

    with pytest.raises(InvalidConfigurationError, match="SERVICE_ARGS") as exc_info:
        ServiceConfig.from_env("/nonexistent/.env")

    assert isinstance(exc_info.value.__cause__, ValueError)
