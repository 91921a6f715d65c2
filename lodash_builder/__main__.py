"""Entry point for `python -m lodash_builder`."""

from dotenv import load_dotenv

load_dotenv()

from lodash_builder.cli import main

if __name__ == "__main__":
    main()
