# metatx_tools/utils/__init__.py
