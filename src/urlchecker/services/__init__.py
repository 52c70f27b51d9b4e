"""The checker and exporter services plus shared building blocks.

Services are the top layer of the diamond DAG, depending on
[urlchecker.core][urlchecker.core], [urlchecker.utils][urlchecker.utils],
and [urlchecker.models][urlchecker.models]. Each service extends
[BaseService][urlchecker.core.base_service.BaseService] and implements
``async def run()`` for one cycle of work.

Attributes:
    Checker: One ad-hoc pass per cycle; results, group summary and nested
        JSON are printed. One-shot by default, continuous with ``--metrics``.
    Exporter: Scheduled passes over a fixed worker pool; results are only
        exported as Prometheus metrics.

See Also:
    [common][urlchecker.services.common]: Configuration, the per-target
        check pipeline, group aggregation and rendering.

Examples:
    ```python
    from urlchecker.services import Checker

    async with Checker.from_dict({"urls": ["example.com"]}) as checker:
        await checker.run()
    ```
"""

from .checker import Checker, RunReport
from .common import UrlCheckerConfig
from .exporter import Exporter


__all__ = [
    "Checker",
    "Exporter",
    "RunReport",
    "UrlCheckerConfig",
]
