from .http_fetcher import HttpFetcher, RetriableHTTPError

__all__ = ["HttpFetcher", "RetriableHTTPError"]
