# Settings package. Select a module with DJANGO_SETTINGS_MODULE:
# config.settings.base for deployments, config.settings.test for the test suite.
