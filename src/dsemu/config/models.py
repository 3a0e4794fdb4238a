from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class EmulatorConfig(BaseModel):
    """
    Options for a single datastore emulator instance.

    The consistency value is passed to the emulator verbatim as
    ``--consistency=<value>``; range checks are left to the emulator itself.
    """

    model_config = ConfigDict(frozen=True)

    consistency: float | str  # Simulated eventual-consistency ratio, e.g. 0.9


class Settings(BaseSettings):
    """
    Main configuration for launching the datastore emulator.

    Loads values from the following sources:
    - Environment variables (with prefix DSEMU_)
    - Initialization values (e.g., from YAML)
    - .env file
    - Secret files
    """

    model_config = SettingsConfigDict(env_prefix="DSEMU_", env_nested_delimiter="__")

    emulator: EmulatorConfig = EmulatorConfig(consistency=0.9)  # Emulator instance options
    gcloud_command: list[str] = Field(
        default_factory=lambda: ["gcloud"]
    )  # Program (and leading args) used to run gcloud
    start_timeout: float = 15.0  # Max seconds to wait for the endpoint announcement
    export_env: bool = True  # Publish DATASTORE_EMULATOR_HOST into os.environ
    forward_stderr: bool = True  # Copy emulator stderr to our own stderr

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,  # type: type[BaseSettings]
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Configure the order of configuration sources.

        Loading priority:
        1. Environment variables
        2. Initialization values (e.g., from YAML)
        3. .env file
        4. Secret files
        """
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)
