"""
Parsers for Dockerfiles, shell code and configuration files.
"""
