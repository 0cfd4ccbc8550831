"""
Error classes for WealthLab.

The engine itself never lets an exception escape to its caller: malformed
input is defaulted with a diagnostic and inconsistent profiles are reported
through ``assumptions_valid``. The classes here cover programmer errors at
the library edges (policy registration, CLI input files).
"""


class ConfigError(Exception):
    """
    Configuration error at a library boundary.

    Raised when a policy is registered under an empty kind, when an unknown
    scenario policy is requested from the registry, or when the CLI is given
    a file that does not contain a JSON object.

    **Example Usage:**
        ```python
        from wealthlab.core.errors import ConfigError
        from wealthlab.policies import get_policy

        try:
            policy = get_policy("annuity-ladder")
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```

    The engine facade catches this error for user-defined scenario variants
    and records an ``UNKNOWN_POLICY`` diagnostic instead.
    """

    pass
