"""Errors raised while turning CLI options and environment variables into configuration."""


class ConfigurationError(Exception):
    """Base class for invalid or incomplete configuration."""


class GitHubAuthenticationConfigurationUndefinedError(ConfigurationError):
    """Raised when GitHub credentials are missing, incomplete or ambiguous."""


class RequiredConfigurationElementError(ConfigurationError):
    """Raised when a setting the announcer cannot work without is missing."""

    def __init__(self, name: str, cli_name: str, env_name: str) -> None:
        """Record which setting is missing and where it can be provided."""
        super().__init__(f"{name} is not configured; pass {cli_name} or set the {env_name} environment variable")
        self.name = name
        self.cli_name = cli_name
        self.env_name = env_name
