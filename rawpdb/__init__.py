"""Read-only access to the streams and debug records of MSF/PDB files."""

__version__ = "0.1.0"