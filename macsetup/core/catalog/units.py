"""
Unit builders — the vocabulary the phase catalog is written in.

Each builder returns an InstallableUnit with a sensible idempotency
check and toggle key:

    brew("jq")                       toggle brew.jq,    skip if `jq` on PATH
    cask("firefox", app="Firefox")   toggle cask.firefox, skip if Firefox.app
    npm("wrangler")                  toggle npm.wrangler, skip if `wrangler` on PATH
    mas(497799835, "Xcode")          toggle mas.xcode,  skip if Xcode.app
    defaults(...)                    unconditional (defaults write is idempotent)
    dmg_app("DPN", url)              toggle dmg.dpn,    skip if DPN.app
"""

from __future__ import annotations

from pathlib import Path

from macsetup.core.context import RunContext
from macsetup.core.engine.guard import app_installed, on_path
from macsetup.core.errors import UnitFailed
from macsetup.core.models.phase import Action, Check, InstallableUnit, Step

DOWNLOAD_CACHE = "~/.cache/macsetup"


def brew(formula: str, binary: str | None = None) -> InstallableUnit:
    return InstallableUnit(
        id=f"brew.{formula}",
        command=("brew", "install", formula),
        check=on_path(binary or formula),
        retryable=True,
    )


def _cask_listed(name: str) -> Check:
    def _check(ctx: RunContext) -> bool:
        return ctx.run("brew", "list", "--cask", name).ok

    _check.__name__ = f"cask_listed({name})"
    return _check


def cask(name: str, app: str | None = None) -> InstallableUnit:
    """A Homebrew cask; checked by app bundle when ``app`` is given."""
    return InstallableUnit(
        id=f"cask.{name}",
        command=("brew", "install", "--cask", name),
        check=app_installed(app) if app else _cask_listed(name),
        retryable=True,
    )


def npm(package: str, binary: str | None = None) -> InstallableUnit:
    short = package.rsplit("/", 1)[-1]
    return InstallableUnit(
        id=f"npm.{short}",
        command=("npm", "install", "-g", package),
        check=on_path(binary or short),
        retryable=True,
    )


def mas(app_id: int, app: str) -> InstallableUnit:
    """A Mac App Store app; requires the user to be signed in."""
    slug = app.lower().replace(" ", "-")

    def _install(ctx: RunContext) -> None:
        result = ctx.run("mas", "install", str(app_id), retry=True)
        if not result.ok:
            raise UnitFailed(
                f"mas.{slug}",
                result,
                message=f"{app} install failed — sign into the App Store and re-run",
            )

    return InstallableUnit(
        id=f"mas.{slug}",
        action=_install,
        check=app_installed(app),
        label=app,
    )


def defaults(
    domain: str,
    key: str,
    kind: str,
    value: str,
    group: str,
    current_host: bool = False,
    sudo: bool = False,
) -> InstallableUnit:
    """One ``defaults write``. Unconditional: rewriting a value is harmless."""
    command: tuple[str, ...] = ("defaults",)
    if current_host:
        command += ("-currentHost",)
    command += ("write", domain, key, f"-{kind}", value)
    if sudo:
        command = ("sudo", *command)
    return InstallableUnit(
        id=f"defaults.{domain}.{key}",
        command=command,
        toggle=f"prefs.{group}",
    )


def tolerant(id: str, *command: str, toggle: str | None = None) -> InstallableUnit:
    """A best-effort command whose failure is only logged."""

    def _run(ctx: RunContext) -> None:
        result = ctx.run(*command)
        if not result.ok:
            ctx.transcript.line(f"   ({result.display} exited {result.exit_code}, ignored)")

    return InstallableUnit(id=id, action=_run, toggle=toggle, label=" ".join(command))


def download(ctx: RunContext, url: str, name: str) -> Path:
    """Fetch an installer (script or disk image) into ~/.cache/macsetup."""
    target = ctx.fs.ensure_dir(DOWNLOAD_CACHE) / name
    ctx.run_checked("curl", "-fsSL", "-o", str(target), url, retry=True)
    return target


def dmg_app(name: str, url: str, homepage: str = "") -> InstallableUnit:
    """An app shipped only as a vendor disk image.

    The image is mounted at a private mount point, its bundle copied to
    /Applications, then detached and deleted whether or not the copy
    worked.
    """
    slug = name.lower().replace(" ", "-")

    def _install(ctx: RunContext) -> None:
        try:
            image = download(ctx, url, f"{slug}.dmg")
        except UnitFailed as e:
            manual = f" — install manually from {homepage}" if homepage else ""
            raise UnitFailed(f"dmg.{slug}", e.result, message=f"{name} download failed{manual}") from e
        try:
            mount = ctx.fs.ensure_dir(f"{DOWNLOAD_CACHE}/{slug}-volume")
            ctx.run_checked("hdiutil", "attach", str(image), "-nobrowse", "-quiet", "-mountpoint", str(mount))
            try:
                bundle = next(iter(sorted(mount.glob("*.app"))), mount / f"{name}.app")
                ctx.run_checked("cp", "-R", str(bundle), str(ctx.fs.applications_dir))
            finally:
                if not ctx.run("hdiutil", "detach", str(mount), "-quiet").ok:
                    ctx.transcript.warning(f"Could not detach {mount} — run: hdiutil detach {mount}")
        finally:
            image.unlink(missing_ok=True)

    return InstallableUnit(
        id=f"dmg.{slug}",
        action=_install,
        check=app_installed(name),
        label=name,
    )


def each(*units: InstallableUnit) -> tuple[Step, ...]:
    """One isolated step per unit, so independent packages fail alone."""
    return tuple(Step(name=unit.id, units=(unit,)) for unit in units)


def step(
    name: str,
    *units: InstallableUnit,
    action: Action | None = None,
    critical: bool = False,
    chained: bool = False,
) -> Step:
    return Step(name=name, units=tuple(units), action=action, critical=critical, chained=chained)
