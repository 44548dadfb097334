"""
RSS Feed Source Configuration
- One feed per pass. The El País front page is the default source.
"""

DEFAULT_FEED_URL = "https://feeds.elpais.com/mrss-s/pages/ep/site/elpais.com/portada"

DEFAULT_COLLECTION = "articles"
