from tests.test_utils.factories.core import SAMPLE_URL, ObservationFactory, TargetConfigFactory
from tests.test_utils.factories.storage import ResourceSnapshotFactory

__all__ = [
    "SAMPLE_URL",
    "ObservationFactory",
    "ResourceSnapshotFactory",
    "TargetConfigFactory",
]
