"""
MAPLEAD — Browser Fingerprint Rotation
Generates randomized but realistic browser contexts and trims page weight.
Best effort only; none of this is a guarantee against bot detection.
"""

import random


# ──────────────────────────────────────────────────
#  Realistic browser profiles
# ──────────────────────────────────────────────────

USER_AGENTS = [
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2_1) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
]

VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1440, "height": 900},
    {"width": 1536, "height": 864},
    {"width": 1366, "height": 768},
    {"width": 1280, "height": 800},
]

TIMEZONES = [
    "Europe/Madrid",
    "Europe/London",
    "Europe/Berlin",
    "America/New_York",
]

LOCALES = ["en-US", "en-GB"]

# Chromium flags that keep long headless runs from crashing
BROWSER_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
]

# Website-email pages never need these to expose addresses
BLOCKED_RESOURCE_PATTERN = (
    "**/*.{png,jpg,jpeg,gif,webp,svg,ico,woff,woff2,ttf,eot,css,mp4,webm,ogg,mp3,wav,pdf}"
)


class FingerprintManager:
    """
    Generates randomized but internally-consistent browser contexts.
    Each maps run and each email worker gets its own fingerprint.
    """

    def __init__(self):
        self._used_fingerprints = []

    def generate(self) -> dict:
        """
        Generate a new browser context configuration.
        Returns a dict compatible with playwright's browser.new_context(**config).
        """
        fingerprint = {
            "user_agent": random.choice(USER_AGENTS),
            "viewport": random.choice(VIEWPORTS),
            "timezone_id": random.choice(TIMEZONES),
            "locale": random.choice(LOCALES),
            "ignore_https_errors": True,
        }
        self._used_fingerprints.append(fingerprint)
        return fingerprint

    async def apply_js_overrides(self, page):
        """Hide the most common automation flag before any page script runs."""
        await page.add_init_script("""
            Object.defineProperty(navigator, 'webdriver', {
                get: () => undefined
            });
        """)

    async def block_heavy_resources(self, page):
        """Abort requests for images, fonts, stylesheets and media."""
        await page.route(BLOCKED_RESOURCE_PATTERN, lambda route: route.abort())

    @property
    def stats(self) -> dict:
        return {
            "total_fingerprints_generated": len(self._used_fingerprints),
            "unique_user_agents": len(set(
                fp["user_agent"] for fp in self._used_fingerprints
            )),
        }
