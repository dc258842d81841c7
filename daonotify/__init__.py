"""DAO notification fan-out and email delivery service package.

Ensures the local ``daonotify`` package takes precedence over similarly named
modules that might be installed in the environment.
"""
