"""Duration parsing, socket probes and target list files.

The utils layer depends only on [urlchecker.models][urlchecker.models]. It
provides the low-level helpers used by [urlchecker.core][urlchecker.core]
and [urlchecker.services][urlchecker.services].

Attributes:
    parsing: Go-style duration strings (``500ms``, ``1m30s``) and the
        pydantic ``Duration`` field type.
    transport: Single timed TCP/UDP connection attempts
        ([Dialer][urlchecker.utils.transport.Dialer]).
    sources: Target list files with ``[group:<name>]`` sections.

Note:
    The utils layer has **zero** imports from ``urlchecker.core`` or
    ``urlchecker.services``.
"""
