"""
Nudge Studio -- application services around the nudge engine.

Package layout:
    services/   Qt event bus, Qt scheduler, editor session, save worker,
                HTTP client for the campaign backend
    config      StudioSettings (settings.json plus environment overrides)
    paths       Platform directories for settings, drafts and templates
    main        Command line entry point
"""
