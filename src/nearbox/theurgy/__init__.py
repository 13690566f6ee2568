"""
Theurgy - Command implementations for the Nearbox CLI.

Each module groups related top-level CLI commands:
- accounts: create-account, deploy, call
- query:    status, view, to-base-units, genesis-records
- lockup:   import-contract, setup-lockup
"""
