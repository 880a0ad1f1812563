"""
L1 Domain — Launcher wrapper template (pure).

A binary wrapper is a small shell script that sets up the app
environment and hands over to the confinement launcher. All paths
passed in are in-system paths (install root already stripped).
"""

from __future__ import annotations

_WRAPPER_TEMPLATE = """\
#!/bin/sh
# !!!never remove this line!!!
##TARGET={target}

set -e

TMPDIR="/tmp/snaps/{qualified}/{version}/tmp"
if [ ! -d "$TMPDIR" ]; then
    mkdir -p -m1777 "$TMPDIR"
fi
export TMPDIR
export TEMPDIR="$TMPDIR"

# app info
export SNAP_NAME="{name}"
export SNAP_ORIGIN="{origin}"
export SNAP_FULLNAME="{qualified}"

# app paths
export SNAP_APP_PATH="{path}"
export SNAP_APP_DATA_PATH="{data_path}"
export SNAP_APP_USER_DATA_PATH="$HOME/{user_data_path}"
export SNAP_APP_TMPDIR="$TMPDIR"

if [ ! -d "$SNAP_APP_USER_DATA_PATH" ]; then
   mkdir -p "$SNAP_APP_USER_DATA_PATH"
fi
export HOME="$SNAP_APP_USER_DATA_PATH"

export SNAP_OLD_PWD="$(pwd)"
cd {path}
{launcher} {qualified} {profile} {target} "$@"
"""


def render_binary_wrapper(
    *,
    name: str,
    origin: str,
    qualified: str,
    version: str,
    target: str,
    path: str,
    profile: str,
    launcher: str,
    data_path: str,
    user_data_path: str,
) -> str:
    """Render the wrapper script for one binary.

    Args:
        name: Package name.
        origin: Package origin ("" for frameworks and sideloads).
        qualified: Qualified package name.
        version: Package version.
        target: In-system path of the real executable.
        path: In-system package directory.
        profile: Security profile name the launcher applies.
        launcher: Confinement launcher executable.
        data_path: In-system system data directory of this version.
        user_data_path: Per-user data directory, relative to ``$HOME``.
    """
    return _WRAPPER_TEMPLATE.format(
        name=name,
        origin=origin,
        qualified=qualified,
        version=version,
        target=target,
        path=path,
        profile=profile,
        launcher=launcher,
        data_path=data_path,
        user_data_path=user_data_path,
    )
