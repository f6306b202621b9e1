"""Allow `python -m antymology`"""
from .main import main

if __name__ == "__main__":
    main()
