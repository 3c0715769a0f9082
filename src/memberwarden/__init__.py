"""
Memberwarden - Rules Acknowledgement and Temporary Suspension Bot

Memberwarden grants a member role to users who acknowledge a pinned rules
notice and lets administrators place users into temporary suspension that
expires on its own, surviving bot restarts.

Core Components:

- **Suspension Ledger**: SQLite-backed record of active suspensions and the
  pinned rules message pointer
- **Expiry Scheduler**: one asyncio timer per active suspension, cancellable
  by explicit release
- **Release Sequencer**: idempotent end-of-suspension action (notify, then
  remove the record)
- **Acknowledgement Gate**: grants or revokes the member role from reactions
  on the rules message, retracting reactions of suspended users
- **Recovery Bootstrap**: rebuilds every timer from the ledger at startup

Usage:
    from memberwarden.main import main
    main()  # Starts the bot
"""
