"""Issue detectors.

Each detector is a plain function ``(snapshot, settings) -> list[Issue]``
that reads the immutable snapshot only.  Detectors know nothing about each
other; the reconciler decides which findings survive.
"""

from knitcheck.core.detectors.ambiguous import detect_ambiguous_providers
from knitcheck.core.detectors.attached import collect_attached_issues
from knitcheck.core.detectors.circular import detect_circular_dependencies
from knitcheck.core.detectors.common import Detector
from knitcheck.core.detectors.qualifier import detect_qualifier_mismatches
from knitcheck.core.detectors.singleton import detect_singleton_violations
from knitcheck.core.detectors.unresolved import detect_unresolved_dependencies

DETECTORS: tuple[tuple[str, Detector], ...] = (
    ("circular", detect_circular_dependencies),
    ("ambiguous", detect_ambiguous_providers),
    ("unresolved", detect_unresolved_dependencies),
    ("singleton", detect_singleton_violations),
    ("qualifier", detect_qualifier_mismatches),
    ("attached", collect_attached_issues),
)

__all__ = [
    "DETECTORS",
    "Detector",
    "collect_attached_issues",
    "detect_ambiguous_providers",
    "detect_circular_dependencies",
    "detect_qualifier_mismatches",
    "detect_singleton_violations",
    "detect_unresolved_dependencies",
]
