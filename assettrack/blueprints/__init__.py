"""
Blueprint package.

  - main     -> health check and dashboard stats
  - auth     -> development login, logout, current user
  - catalog  -> workspaces, asset types, field schema, reference lists
  - assets   -> asset instances, transitions, history, relationships
  - reports  -> export and import
"""
