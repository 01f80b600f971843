"""
Allow ``python -m coparrot``, equivalent to the ``coparrot`` console script.
"""

from coparrot.cli import main


if __name__ == "__main__":
    main(prog_name="coparrot")
