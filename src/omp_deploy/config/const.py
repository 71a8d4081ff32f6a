# omp_deploy/config/const.py
from importlib.metadata import version, PackageNotFoundError

# --- Package Constants ---
package_name = "omp-deploy"
executable_name = package_name
app_name_title = package_name.replace("-", " ").title()
env_name = package_name.replace("-", "_").upper()

DEFAULT_SETTINGS_FILE = "settings.json"
USER_AGENT = f"{package_name}/open.mp"
DOWNLOAD_TIMEOUT = 30

# --- open.mp Server Layout ---
SERVER_EXECUTABLE = "omp-server"
COMPONENTS_DIR = "components"
SERVER_ARCHIVE_NAME = "server.tar.gz"
DEFAULT_SERVER_URL = (
    "https://github.com/openmultiplayer/open.mp/releases/download/"
    "v1.4.0.2779/open.mp-linux-x86.tar.gz"
)

# Shared libraries that make up a complete server install, under COMPONENTS_DIR.
REQUIRED_COMPONENTS = (
    "Actors.so",
    "Checkpoints.so",
    "Classes.so",
    "Console.so",
    "CustomModels.so",
    "Databases.so",
    "Dialogs.so",
    "Fixes.so",
    "GangZones.so",
    "LegacyConfig.so",
    "LegacyNetwork.so",
    "Menus.so",
    "Objects.so",
    "Pawn.so",
    "Pickups.so",
    "Recording.so",
    "TextDraws.so",
    "TextLabels.so",
    "Timers.so",
    "Variables.so",
    "Vehicles.so",
)


def get_installed_version() -> str:
    try:
        return version(package_name)
    except PackageNotFoundError:
        return "0.0.0"
