import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """
    Registers command-line options for the datastore emulator fixtures.

      --dsemu-config <path>         : Path to the YAML configuration file.
      --dsemu-consistency <value>   : Consistency override for the emulator.
    """
    g = parser.getgroup("dsemu")
    g.addoption(
        "--dsemu-config", action="store", default=None, help="Path to dsemu YAML configuration file"
    )
    g.addoption(
        "--dsemu-consistency",
        action="store",
        default=None,
        help="Datastore emulator consistency override, e.g. 1.0",
    )
