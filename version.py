"""Claude Usage Scraper version information."""

__version__ = "1.1.0"
__title__ = "Claude Usage Scraper"
__description__ = "Scrape plan usage limits from the Claude.ai usage settings page with a real browser"
__author__ = "Claude Usage Scraper Contributors"
__license__ = "MIT"

# v1.1.0 - Progress bars attributed by label
# - Each progress bar is matched to its nearest preceding section label
#   instead of its position on the page
# - Snapshot age warning after 24 hours
# - Distinct exit codes per failure kind

# v1.0.0 - Four session strategies
# - Interactive login capture (save_auth.py)
# - Saved auth state replay with cookie re-snapshot
# - Attach to a running Chrome over CDP
# - Reuse a real Chrome profile (Chrome must be closed)
