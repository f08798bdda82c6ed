from boolscape.utils import *
from boolscape.errors import *
from boolscape.state_codec import *
from boolscape.rules import *
from boolscape.network import *
from boolscape.dynamics import *
from boolscape.attractors import *
from boolscape.probabilistic import *
from boolscape.analysis import *

try:
    from boolscape._version import __version__
except ImportError:
    __version__ = 'unknown'
