"""Exception types raised at the service boundaries."""


class WidgetConfigError(ValueError):
    """A widget definition file is missing, unparseable or invalid."""


class HistoryFetchError(Exception):
    """The host's history or state API could not be reached or returned garbage."""
