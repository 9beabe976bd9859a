# Import all command modules to ensure commands are registered.

import vaultview.commands.view_commands  # noqa: F401
