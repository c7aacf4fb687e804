"""Reflex configuration for the Data Explorer demo app."""

import reflex as rx

config = rx.Config(
    app_name="data_explorer_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
