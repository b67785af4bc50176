# Taskboard core: authentication, task storage, and focus prioritization
#
# Components:
#   schema.py      - Data model (Task, Project, User, SessionToken, enums)
#   errors.py      - Error taxonomy shared by auth and storage
#   storage.py     - Persistence port (in-memory and SQLite key/value backends)
#   credentials.py - PBKDF2 password hashing and verification
#   session.py     - Session tokens and the auth state machine
#   store.py       - Task/project store with write-through persistence
#   seed.py        - First-run mock dataset
#   focus.py       - Focus-set prioritization engine
#   config.py      - YAML configuration
#   app.py         - Facade wiring the pieces together

__version__ = "0.1.0"
