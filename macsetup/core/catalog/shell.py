"""
Phase 2 — Shell configuration.

Oh My Zsh, Starship, a Nerd Font, the zsh-users plugins and fzf, then
a generated ``~/.zshrc``. The ``.zshrc`` unit has no check: it is
rewritten on every run so it always matches the installed tooling.
"""

from __future__ import annotations

from macsetup.core.catalog.units import brew, cask, download, each, step
from macsetup.core.context import RunContext
from macsetup.core.engine.executor import build_phase
from macsetup.core.engine.guard import path_exists
from macsetup.core.models.phase import InstallableUnit, Phase

OH_MY_ZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
ZSH_CUSTOM = "~/.oh-my-zsh/custom"
ZSH_PLUGINS = (
    "zsh-autosuggestions",
    "zsh-completions",
    "zsh-history-substring-search",
    "zsh-syntax-highlighting",
)

ZSHRC_TEMPLATE = """\
# =============================================================================
# .zshrc — generated by macsetup
# =============================================================================

export ZSH="$HOME/.oh-my-zsh"
ZSH_THEME=""  # Disabled — using Starship

autoload bashcompinit && bashcompinit
autoload -Uz compinit && compinit

plugins=(
    git
    docker
    mise
    zsh-autosuggestions
    zsh-completions
    zsh-history-substring-search
    zsh-syntax-highlighting
    zsh-interactive-cd
    zsh-navigation-tools
    fzf
)

source $ZSH/oh-my-zsh.sh

# --- Aliases: Git ---
alias gitbv="git branch -vv"
alias gitd="git diff"
alias gitca="git commit --amend"
alias gitc="git commit -m"
alias gitcho="git checkout "
alias gitaca="git add -A && git commit --amend"
alias gitac="git add -A && git commit -m"
alias gitsync="git pull --rebase"
alias gitst="git status"

# --- Aliases: Utility ---
alias tailf="tail -n 500 -f "
alias up="cd .."
alias ls="eza --icons"
alias ll="eza --icons -la"
alias lt="eza --icons --tree --level=2"
alias cat="bat --paging=never"

# --- zoxide ---
eval "$(zoxide init zsh)"

# --- GPG ---
export GPG_TTY=$(tty)

# --- Homebrew (must come before mise) ---
eval "$({brew_prefix}/bin/brew shellenv)"

# --- mise ---
command -v mise &>/dev/null && eval "$(mise activate zsh)"

# --- Android SDK ---
export ANDROID_HOME=$HOME/Library/Android/sdk
export PATH=$PATH:$ANDROID_HOME/emulator
export PATH=$PATH:$ANDROID_HOME/platform-tools
export PATH=$PATH:$ANDROID_HOME/cmdline-tools/latest/bin

# --- AWS CLI completion ---
complete -C '{brew_prefix}/bin/aws_completer' aws

# --- Starship (must be last) ---
eval "$(starship init zsh)"
"""

STARSHIP_CONFIG = "~/.config/starship.toml"
STARSHIP_TEMPLATE = """\
# Starship prompt — generated by macsetup
add_newline = true
command_timeout = 1000

[character]
success_symbol = "[❯](bold green)"
error_symbol = "[❯](bold red)"

[directory]
truncation_length = 3
truncate_to_repo = true

[git_branch]
symbol = " "

[nodejs]
format = "via [⬢ $version](bold green) "

[python]
format = "via [🐍 $version](bold yellow) "
"""


def render_zshrc(brew_prefix: str) -> str:
    # str.replace, not format: the template is full of shell braces
    return ZSHRC_TEMPLATE.replace("{brew_prefix}", brew_prefix)


def _install_oh_my_zsh(ctx: RunContext) -> None:
    script = download(ctx, OH_MY_ZSH_INSTALL_URL, "oh-my-zsh-install.sh")
    ctx.run_checked("sh", str(script), "--unattended")


def _plugin(name: str) -> InstallableUnit:
    target = f"{ZSH_CUSTOM}/plugins/{name}"

    def _clone(ctx: RunContext) -> None:
        ctx.run_checked(
            "git", "clone", f"https://github.com/zsh-users/{name}", str(ctx.fs.resolve(target)),
            retry=True,
        )

    return InstallableUnit(
        id=f"zsh-plugin.{name}",
        action=_clone,
        check=path_exists(target),
        label=name,
    )


def _write_zshrc(ctx: RunContext) -> None:
    path = ctx.fs.write_file("~/.zshrc", render_zshrc(ctx.brew_prefix))
    ctx.transcript.success(f"Wrote {path}")


def _write_starship_config(ctx: RunContext) -> None:
    ctx.fs.ensure_dir("~/.config")
    ctx.fs.write_file(STARSHIP_CONFIG, STARSHIP_TEMPLATE)


def phase() -> Phase:
    return build_phase(
        2,
        "Shell Configuration",
        step(
            "oh-my-zsh",
            InstallableUnit(
                id="oh-my-zsh",
                action=_install_oh_my_zsh,
                check=path_exists("~/.oh-my-zsh"),
            ),
        ),
        *each(
            brew("starship"),
            cask("font-meslo-lg-nerd-font"),
        ),
        step("zsh-plugins", *(_plugin(name) for name in ZSH_PLUGINS)),
        *each(brew("fzf")),
        step("zshrc", InstallableUnit(id="zshrc", action=_write_zshrc)),
        step(
            "starship-config",
            InstallableUnit(
                id="starship-config",
                action=_write_starship_config,
                check=path_exists(STARSHIP_CONFIG),
            ),
        ),
    )
