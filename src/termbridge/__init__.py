"""termbridge -- Server-rendered terminal UIs over a single WebSocket.

This package streams a text-mode user interface rendered on the server to
a terminal emulator (xterm.js in a browser tab, or a local terminal) and
relays keyboard, mouse and resize events back. There is no PTY and no
child process anywhere: each connection gets a virtual TTY that a
rendering engine draws into as if it were a real terminal.
"""

__version__ = "0.1.0"
