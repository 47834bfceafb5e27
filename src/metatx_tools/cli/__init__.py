# metatx_tools/cli/__init__.py
