__version__ = "0.1.0"


from .rom import Rom, DEFAULT_ASSETS
from .descriptors import DescriptorStore, Asset, SingleAsset, TableAsset, TableDescriptor
from .errors import RecompressError
