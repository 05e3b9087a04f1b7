"""
Main entry point when running the tank_pathfinder module with python -m.
"""

from .cli import run

if __name__ == "__main__":
    run()
