"""
Phase 9 — Productivity & communication apps.

Each cask is its own isolated step, so one unavailable download never
costs the rest of the list. ``APP_CASKS`` maps the cask token to the
bundle name it installs under ``/Applications``; the validator reads
the same table.
"""

from __future__ import annotations

from macsetup.core.catalog.units import cask, dmg_app, each, mas
from macsetup.core.engine.executor import build_phase
from macsetup.core.models.phase import Phase

APP_CASKS = {
    # Office & productivity
    "microsoft-office": "Microsoft Word",
    "notion": "Notion",
    "obsidian": "Obsidian",
    "zoom": "zoom.us",
    # Communication
    "telegram": "Telegram",
    "whatsapp": "WhatsApp",
    "discord": "Discord",
    # Cloud storage
    "google-drive": "Google Drive",
    # Dev productivity
    "postman": "Postman",
    "raycast": "Raycast",
    "rectangle": "Rectangle",
    "1password": "1Password",
    # Media
    "spotify": "Spotify",
    "vlc": "VLC",
    "iina": "IINA",
    # Utilities
    "appcleaner": "AppCleaner",
    "the-unarchiver": "The Unarchiver",
    "keka": "Keka",
    "alt-tab": "AltTab",
    "stats": "Stats",
    "keepingyouawake": "KeepingYouAwake",
    # Security
    "adguard": "AdGuard",
    "adguard-vpn": "AdGuard VPN",
}

APP_STORE_APPS = {
    694633015: "VPN Unlimited",
    1475622766: "KeepSolid SmartDNS",
}

# Not in Homebrew: name -> (disk image, vendor page). The DPN build is version-pinned.
DMG_APPS = {
    "DPN": ("https://downloads.deeper.network/DPN/test/DPN-2.0.0.251202-macos-arm-64.dmg", "https://deeper.network"),
    "Moonlock": ("https://macpaw.com/download/moonlock", "https://macpaw.com/moonlock"),
}


def phase() -> Phase:
    return build_phase(
        9,
        "Productivity & Communication Apps",
        *each(*(cask(token, app=app) for token, app in APP_CASKS.items())),
        *each(*(mas(app_id, app) for app_id, app in APP_STORE_APPS.items())),
        *each(*(dmg_app(name, url, homepage) for name, (url, homepage) in DMG_APPS.items())),
    )
