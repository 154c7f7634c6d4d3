"""foodbot — food suggestion chat bot with file-backed state.

Layout:
    ~/.foodbot/data/
    ├── foods.txt                 # Catalog, one food per line
    ├── food_cache.json           # Current suggestion + timestamp
    ├── admins.json               # Privileged users (merged with seed admins)
    └── restricted_users.json     # Restricted users
"""
