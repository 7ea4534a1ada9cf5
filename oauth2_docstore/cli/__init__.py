# oauth2_docstore/cli/__init__.py
