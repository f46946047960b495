"""
Browser automation for job application forms.

Usage:
    from browser import BrowserManager
    from browser.engine import AutofillEngine

    with BrowserManager() as browser:
        browser.goto("https://...")
        report = AutofillEngine(browser.page).run({"profile": profile_dict})
"""

from .browser_manager import BrowserConfig, BrowserManager, BrowserMode
from .config import AI_CONFIG, LOGS_DIR
from .profile import Profile, ProfileManager, get_profile_manager

__all__ = [
    "BrowserManager",
    "BrowserConfig",
    "BrowserMode",
    "AI_CONFIG",
    "LOGS_DIR",
    "Profile",
    "ProfileManager",
    "get_profile_manager",
]
