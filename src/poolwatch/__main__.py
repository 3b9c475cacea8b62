"""Allow ``python -m poolwatch``."""

from poolwatch.main import main

main()
