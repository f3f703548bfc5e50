"""Operations exposed by the command-line interface.

Each module wraps the REST helpers from :mod:`orthanc_cli.api.client` for
one area of the archive. Nothing here prints or exits; failures are raised as
:class:`orthanc_cli.errors.OrthancCliError` subclasses.
"""

from .modalities import ModalityClient
from .resources import HierarchyClient
from .transform import TransformEngine

__all__ = ["HierarchyClient", "ModalityClient", "TransformEngine"]
