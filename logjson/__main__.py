"""
Allow running logjson as a module: python -m logjson
"""
from logjson.cli import main

if __name__ == '__main__':
    main()
