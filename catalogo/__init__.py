"""Package principal de l'application Catalogo Libri."""

from .__version__ import __app_name__, __description__, __version__

__all__ = [
    "__version__",
    "__app_name__",
    "__description__",
]
