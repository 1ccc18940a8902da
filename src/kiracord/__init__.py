"""
Kiracord - per-guild community governance for Discord

Kiracord watches the messages of every guild it is a member of and decides,
for each one, whether to run a prefixed command, send an autorespond, enforce
the guild's blacklist, or just keep the member bookkeeping up to date.

Core Components:

- **Guild State**: Users, roles, channel configs and per-guild settings
  (aliases, translation overrides, autoresponds, blacklist, mute role)
- **Command Dispatch**: Alias resolution, wildcard permissions, syntax
  validation and per-command frequency limits in front of pluggable commands
- **Moderation Gate**: Blacklist matching with mute escalation on every third hit
- **Autorespond**: Typo-tolerant trigger matching via edit distance
- **Persistence**: SQLite storage of every guild entity as a flat record

Usage:
    from kiracord.main import main
    main()
"""
