"""
Phase 6 — React Native cross-platform environment.
"""

from __future__ import annotations

from macsetup.core.catalog.units import brew, cask, each, npm, step, tolerant
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.engine.guard import path_exists
from macsetup.core.models.phase import InstallableUnit, Phase

ANDROID_HOME = "~/Library/Android/sdk"
ANDROID_API = "36"
SYSTEM_IMAGE = f"system-images;android-{ANDROID_API};google_apis;arm64-v8a"
SDK_PACKAGES = (
    "platform-tools",
    f"platforms;android-{ANDROID_API}",
    f"build-tools;{ANDROID_API}.0.0",
    SYSTEM_IMAGE,
    "emulator",
    "cmdline-tools;latest",
)
AVD_NAME = f"Pixel_8_API_{ANDROID_API}"


def _android_env(ctx: RunContext) -> None:
    sdk = ctx.fs.resolve(ANDROID_HOME)
    ctx.export("ANDROID_HOME", str(sdk))
    ctx.append_path(
        str(sdk / "cmdline-tools" / "latest" / "bin"),
        str(sdk / "platform-tools"),
        str(sdk / "emulator"),
    )


def _install_sdk_packages(ctx: RunContext) -> None:
    # sdkmanager asks once per license
    ctx.run("sdkmanager", "--licenses", input="y\n" * 20)
    ctx.run_checked("sdkmanager", *SDK_PACKAGES, retry=True)


def _avd_exists(ctx: RunContext) -> bool:
    listing = ctx.run("avdmanager", "list", "avd", "-c")
    return listing.ok and AVD_NAME in listing.stdout.split()


def _create_avd(ctx: RunContext) -> None:
    result = ctx.run(
        "avdmanager", "create", "avd",
        "-n", AVD_NAME,
        "-k", SYSTEM_IMAGE,
        "-d", "pixel_8",
        input="no\n",
    )
    if not result.ok:
        ctx.transcript.warning("AVD creation failed — create manually in Android Studio")


def phase() -> Phase:
    return build_phase(
        6,
        "React Native Environment",
        step(
            "core",
            brew("watchman"),
            brew("cocoapods", binary="pod"),
            npm("eas-cli", binary="eas"),
        ),
        step(
            "android-sdk",
            InstallableUnit(id="android-env", action=_android_env, toggle="android-sdk"),
            InstallableUnit(
                id="android-sdk",
                action=_install_sdk_packages,
                check=path_exists(f"{ANDROID_HOME}/platform-tools"),
            ),
            InstallableUnit(id="android-avd", action=_create_avd, check=_avd_exists),
            chained=True,
        ),
        step("ios", tolerant("ios-platform", "xcodebuild", "-downloadPlatform", "iOS")),
        *each(cask("reactotron", app="Reactotron")),
    )
