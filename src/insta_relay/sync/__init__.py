"""
Sync pipeline: from raw Instagram updates to change events.

``paths`` parses realtime locators, ``reconciler`` diffs cached entities
against patches, ``router`` classifies realtime records, push notifications
and polled listings, ``polling`` drives the fallback inbox loop, and
``replay`` holds deliveries received before bootstrap completes.
"""
