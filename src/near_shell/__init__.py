"""near-shell -- command line interface to the NEAR blockchain.

Log in through the hosted wallet, inspect accounts, send and stake tokens,
deploy contracts and call their view methods.

Typical workflow::

    near login                       # authorize a key for your account
    near state alice.testnet         # view balance and storage
    near deploy --account-id app.alice.testnet --wasm-file out/main.wasm

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for network and invocation configuration.
    config: Network presets, XDG paths, and configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    login: Browser login capture flow.
"""

__version__ = "0.1.0"
