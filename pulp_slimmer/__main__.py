"""Allow ``python -m pulp_slimmer``."""

from .main import main

main()
