"""
Realtime messaging and presence layer.

Components are plain classes wired together by build_runtime and stored on
app.state.realtime; nothing here is a module-level singleton.
"""
