from tests.test_utils.fakes.fetching import FakeFetcher

__all__ = ["FakeFetcher"]
