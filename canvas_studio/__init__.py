"""
canvas-studio: layer composition model and generation-job orchestration
for a browser canvas editor.
"""
