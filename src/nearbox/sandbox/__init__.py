"""
Sandbox workflows built on the transaction pipeline.

- accounts: create / fund / deploy / call against the sandbox node
- mirror:   copy mainnet contract code into sandbox accounts
- lockup:   full lockup + staking-pool setup for staking tests
"""
