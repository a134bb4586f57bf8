"""
Shell Module.

Filesystem-style command shell for the Chargify billing API.

Architecture:
- options: argv + JSON config + environment -> ShellOptions
- shell: dispatch of builtins (ls, cd, rm, mv, mk, ...) and client commands
- client: async httpx client for the billing API
- output: JSON for pipes, Rich pretty-printing for terminals

Usage:
    billing-shell acme $API_KEY
    billing-shell --config ~/.chargify.json -c "ls customers"
    echo "ls products" | billing-shell --config ~/.chargify.json
"""
