"""
HRM UI automation suites.

  - ui_testing.framework: locator resolution, actions, waits and session state
  - ui_testing.pages: login, dashboard and admin user flows
  - unit: engine tests against an in-memory page, no browser required
"""
