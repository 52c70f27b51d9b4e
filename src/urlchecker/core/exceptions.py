"""urlchecker exception hierarchy.

Exception hierarchy:

```text
UrlCheckerError (base -- never raised directly)
├── ConfigurationError   -- bad durations, out-of-range values, bad config file
└── InputSourceError     -- target list file missing or unreadable
```

Both are fatal at startup: the CLI reports them once and exits before any
check runs.

Transport failures are not exceptions at this level. They are the normal
negative result of a reachability check and the
[Dialer][urlchecker.utils.transport.Dialer] returns them as failed
[CheckOutcome][urlchecker.models.results.CheckOutcome] values.

See Also:
    [load_config()][urlchecker.services.common.configs.load_config]: Raises
        [ConfigurationError][urlchecker.core.exceptions.ConfigurationError].
    [UrlCheckerConfig.resolve_targets()][urlchecker.services.common.configs.UrlCheckerConfig.resolve_targets]:
        Raises [InputSourceError][urlchecker.core.exceptions.InputSourceError].
"""

from __future__ import annotations


class UrlCheckerError(Exception):
    """Base exception for all urlchecker errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(UrlCheckerError):
    """Invalid or missing configuration (config file, CLI flags)."""


class InputSourceError(UrlCheckerError):
    """The target list could not be read."""
