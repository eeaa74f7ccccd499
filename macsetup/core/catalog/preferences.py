"""
Phase 3 — macOS system preferences.

Every ``defaults write`` is grouped under a ``prefs.<group>`` toggle so
a whole family (e.g. the Dock tweaks) can be disabled at once:

    toggles:
      prefs.dock: false
"""

from __future__ import annotations

from macsetup.core.catalog.units import defaults, step, tolerant
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.models.phase import InstallableUnit, Phase

GLOBAL = "NSGlobalDomain"
SCREENSHOTS_DIR = "~/Screenshots"
FIREWALL = "/usr/libexec/ApplicationFirewall/socketfilterfw"
CRASH_REPORTER_HISTORY = "/Library/Application Support/CrashReporter/DiagnosticMessagesHistory"
RESTARTED_SERVICES = ("Finder", "Dock", "SystemUIServer")


FINDER = (
    defaults("com.apple.finder", "AppleShowAllFiles", "bool", "true", "finder"),
    defaults("com.apple.finder", "ShowPathbar", "bool", "true", "finder"),
    defaults(GLOBAL, "AppleShowAllExtensions", "bool", "true", "finder"),
    defaults("com.apple.finder", "FXPreferredViewStyle", "string", "Nlsv", "finder"),
    defaults("com.apple.finder", "FXDefaultSearchScope", "string", "SCcf", "finder"),
    defaults("com.apple.finder", "_FXShowPosixPathInTitle", "bool", "true", "finder"),
    defaults(GLOBAL, "NSTableViewDefaultSizeMode", "int", "1", "finder"),
    defaults(GLOBAL, "com.apple.springing.enabled", "bool", "true", "finder"),
    defaults(GLOBAL, "com.apple.springing.delay", "float", "0.3", "finder"),
)

KEYBOARD = (
    defaults(GLOBAL, "KeyRepeat", "int", "2", "keyboard"),
    defaults(GLOBAL, "InitialKeyRepeat", "int", "15", "keyboard"),
    defaults(GLOBAL, "NSAutomaticSpellingCorrectionEnabled", "bool", "false", "keyboard"),
    defaults(GLOBAL, "NSAutomaticQuoteSubstitutionEnabled", "bool", "false", "keyboard"),
    defaults(GLOBAL, "NSAutomaticDashSubstitutionEnabled", "bool", "false", "keyboard"),
    defaults(GLOBAL, "NSAutomaticCapitalizationEnabled", "bool", "false", "keyboard"),
    defaults(GLOBAL, "NSAutomaticPeriodSubstitutionEnabled", "bool", "false", "keyboard"),
)

DOCK = (
    defaults("com.apple.dock", "autohide", "bool", "true", "dock"),
    defaults("com.apple.dock", "autohide-delay", "float", "0", "dock"),
    defaults("com.apple.dock", "autohide-time-modifier", "float", "0.3", "dock"),
    defaults("com.apple.dock", "tilesize", "int", "48", "dock"),
    defaults("com.apple.dock", "minimize-to-application", "bool", "true", "dock"),
    defaults("com.apple.dock", "show-recents", "bool", "false", "dock"),
    defaults("com.apple.dock", "expose-group-apps", "bool", "true", "dock"),
    defaults("com.apple.dock", "mru-spaces", "bool", "false", "dock"),
    defaults("com.apple.spaces", "spans-displays", "bool", "false", "dock"),
)

# 2 = Mission Control, 4 = Desktop
HOT_CORNERS = (
    defaults("com.apple.dock", "wvous-bl-corner", "int", "2", "hot-corners"),
    defaults("com.apple.dock", "wvous-bl-modifier", "int", "0", "hot-corners"),
    defaults("com.apple.dock", "wvous-br-corner", "int", "4", "hot-corners"),
    defaults("com.apple.dock", "wvous-br-modifier", "int", "0", "hot-corners"),
)

TRACKPAD = (
    defaults("com.apple.AppleMultitouchTrackpad", "Clicking", "bool", "true", "trackpad"),
    defaults(GLOBAL, "com.apple.mouse.tapBehavior", "int", "1", "trackpad", current_host=True),
)

HOUSEKEEPING = (
    defaults("com.apple.desktopservices", "DSDontWriteNetworkStores", "bool", "true", "housekeeping"),
    defaults("com.apple.desktopservices", "DSDontWriteUSBStores", "bool", "true", "housekeeping"),
    defaults("com.apple.menuextra.battery", "ShowPercent", "string", "YES", "housekeeping"),
    defaults(GLOBAL, "NSNavPanelExpandedStateForSaveMode", "bool", "true", "housekeeping"),
    defaults(GLOBAL, "NSNavPanelExpandedStateForSaveMode2", "bool", "true", "housekeeping"),
    defaults(GLOBAL, "PMPrintingExpandedStateForPrint", "bool", "true", "housekeeping"),
    defaults(GLOBAL, "PMPrintingExpandedStateForPrint2", "bool", "true", "housekeeping"),
    defaults("com.apple.CrashReporter", "DialogType", "string", "none", "housekeeping"),
)

SECURITY = (
    defaults("com.apple.screensaver", "askForPassword", "int", "1", "security"),
    defaults("com.apple.screensaver", "askForPasswordDelay", "int", "0", "security"),
    tolerant("firewall", "sudo", FIREWALL, "--setglobalstate", "on", toggle="prefs.security"),
    tolerant(
        "crash-reporter-autosubmit",
        "sudo", "defaults", "write", CRASH_REPORTER_HISTORY, "AutoSubmit", "-bool", "false",
        toggle="prefs.security",
    ),
)


def _screenshots_location(ctx: RunContext) -> None:
    folder = ctx.fs.ensure_dir(SCREENSHOTS_DIR)
    ctx.run_checked("defaults", "write", "com.apple.screencapture", "location", "-string", str(folder))


def _restart_services(ctx: RunContext) -> None:
    for service in RESTARTED_SERVICES:
        ctx.run("killall", service)


def phase() -> Phase:
    return build_phase(
        3,
        "macOS System Preferences",
        step("finder", *FINDER),
        step("keyboard", *KEYBOARD),
        step("dock", *DOCK),
        step("hot-corners", *HOT_CORNERS),
        step("trackpad", *TRACKPAD),
        step(
            "screenshots",
            InstallableUnit(id="screenshots", action=_screenshots_location, toggle="prefs.screenshots"),
        ),
        step("housekeeping", *HOUSEKEEPING),
        step("security", *SECURITY),
        step("restart-services", action=_restart_services),
        needs_sudo=True,
    )
