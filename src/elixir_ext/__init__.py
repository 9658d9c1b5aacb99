"""elixir-ext package root."""

from elixir_ext.exceptions import (
    ConfigurationError,
    ElixirExtError,
    FilesystemError,
    NotFoundError,
    TransportError,
)
from elixir_ext.extension import ElixirExtension
from elixir_ext.labels import CodeLabel, CodeLabelSpan, LabelFormatter
from elixir_ext.provisioner import BinaryProvisioner, ProvisionerRegistry
from elixir_ext.server_identity import ELIXIR_LS, ServerIdentity

__all__ = [
    "__version__",
    "BinaryProvisioner",
    "CodeLabel",
    "CodeLabelSpan",
    "ConfigurationError",
    "ELIXIR_LS",
    "ElixirExtError",
    "ElixirExtension",
    "FilesystemError",
    "LabelFormatter",
    "NotFoundError",
    "ProvisionerRegistry",
    "ServerIdentity",
    "TransportError",
]

__version__ = "0.1.0"
