# All types a user would care about are made available in the top level package.

from .exceptions import *  # noqa: F403 public API
from .cache import *  # noqa: F403 public API
from .workqueue import *  # noqa: F403 public API
from .controller import *  # noqa: F403 public API
from .config import Settings, load_settings
from .keys import controller_of, object_key, owner_key, split_key
from .resources import INGRESS, SERVICE, Kind
from .source import EventSource
from .manager import Manager


def run(settings=None):
    """Run the controller with the given settings until interrupted."""
    Manager(settings).run()
