"""Review feed crawling subsystem.

Structure:
- base.py: RawReview bundle and the Extractor contract
- transport.py: proxy fallback chain over httpx
- spiders/: listing-mode (selectolax) and syndication-mode (ElementTree) extractors
- pagination.py: sequential, throttled page walker for listing mode
- runner.py: CLI entrypoint for manual runs
"""
