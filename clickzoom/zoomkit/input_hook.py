"""Global mouse hook: delivers button presses and moves via a Win32 low-level hook.

Runs the hook in a dedicated thread so the Qt event loop never blocks
on it.  Events cross to the receiver's thread as queued signals.  On
platforms without Win32 hooks, ``start()`` logs a warning and no events
are delivered.
"""

import logging
import sys
import ctypes
from typing import Optional

from PySide6.QtCore import QObject, QThread, Signal

from .models import MouseButton

logger = logging.getLogger(__name__)

# Win32 constants
WH_MOUSE_LL = 14
WM_MOUSEMOVE = 0x0200
WM_LBUTTONDOWN = 0x0201
WM_RBUTTONDOWN = 0x0204
WM_MBUTTONDOWN = 0x0207
WM_XBUTTONDOWN = 0x020B
WM_QUIT = 0x0012
XBUTTON1 = 0x0001

_BUTTON_MESSAGES = {
    WM_LBUTTONDOWN: MouseButton.LEFT,
    WM_RBUTTONDOWN: MouseButton.RIGHT,
    WM_MBUTTONDOWN: MouseButton.MIDDLE,
}

if sys.platform == "win32":
    import ctypes.wintypes as wintypes

    class MSLLHOOKSTRUCT(ctypes.Structure):
        _fields_ = [
            ("pt", wintypes.POINT),
            ("mouseData", wintypes.DWORD),
            ("flags", wintypes.DWORD),
            ("time", wintypes.DWORD),
            ("dwExtraInfo", ctypes.POINTER(ctypes.c_ulong)),
        ]

    # Use WINFUNCTYPE with proper pointer-sized types for 64-bit compat
    HOOKPROC = ctypes.WINFUNCTYPE(
        wintypes.LPARAM,   # LRESULT (pointer-sized)
        ctypes.c_int,      # nCode
        wintypes.WPARAM,   # wParam (pointer-sized)
        wintypes.LPARAM,   # lParam (pointer-sized)
    )


def button_for_message(w_param: int, mouse_data: int = 0) -> Optional[MouseButton]:
    """Map a button-down window message to a :class:`MouseButton`."""
    if w_param == WM_XBUTTONDOWN:
        return MouseButton.X1 if (mouse_data >> 16) & 0xFFFF == XBUTTON1 else MouseButton.X2
    return _BUTTON_MESSAGES.get(w_param)


class _MouseHookThread(QThread):
    """Runs a Win32 message loop with a low-level mouse hook."""

    button_pressed = Signal(int, int, int)  # x, y virtual-desktop px, button
    moved = Signal(int, int)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._thread_id: int = 0
        self._hook = None
        self._proc = None  # prevent GC of the callback

    def run(self) -> None:
        if sys.platform != "win32":
            return

        user32 = ctypes.windll.user32
        kernel32 = ctypes.windll.kernel32
        self._thread_id = kernel32.GetCurrentThreadId()

        # Set argtypes/restype for 64-bit pointer compatibility
        user32.SetWindowsHookExW.argtypes = [
            ctypes.c_int, HOOKPROC, wintypes.HINSTANCE, wintypes.DWORD
        ]
        user32.SetWindowsHookExW.restype = wintypes.HHOOK

        user32.CallNextHookEx.argtypes = [
            wintypes.HHOOK, ctypes.c_int, wintypes.WPARAM, wintypes.LPARAM
        ]
        user32.CallNextHookEx.restype = wintypes.LPARAM

        user32.UnhookWindowsHookEx.argtypes = [wintypes.HHOOK]
        user32.UnhookWindowsHookEx.restype = wintypes.BOOL

        def low_level_handler(n_code, w_param, l_param):
            try:
                if n_code >= 0:
                    info = ctypes.cast(l_param, ctypes.POINTER(MSLLHOOKSTRUCT)).contents
                    if w_param == WM_MOUSEMOVE:
                        self.moved.emit(info.pt.x, info.pt.y)
                    else:
                        button = button_for_message(w_param, info.mouseData)
                        if button is not None:
                            self.button_pressed.emit(info.pt.x, info.pt.y, int(button))
            except Exception:
                logger.exception("Error in mouse hook callback")
            return user32.CallNextHookEx(self._hook, n_code, w_param, l_param)

        self._proc = HOOKPROC(low_level_handler)
        self._hook = user32.SetWindowsHookExW(WH_MOUSE_LL, self._proc, None, 0)
        if not self._hook:
            logger.error("SetWindowsHookExW failed (error %d)", kernel32.GetLastError())
            return

        # Pump messages so the hook receives events
        msg = wintypes.MSG()
        while user32.GetMessageW(ctypes.byref(msg), None, 0, 0) > 0:
            user32.TranslateMessage(ctypes.byref(msg))
            user32.DispatchMessageW(ctypes.byref(msg))

        if self._hook:
            user32.UnhookWindowsHookEx(self._hook)
            self._hook = None

    def request_stop(self) -> None:
        if self._thread_id and sys.platform == "win32":
            ctypes.windll.user32.PostThreadMessageW(
                self._thread_id, WM_QUIT, 0, 0
            )


class MouseHook(QObject):
    """Process-wide mouse event source with two channels.

    ``mouse_down(x, y, button)`` fires on every button press and
    ``mouse_move(x, y)`` on every move, both in virtual-desktop pixels.
    Subscribers connect to the signals; ``start()`` / ``stop()`` control
    the underlying hook.
    """

    mouse_down = Signal(int, int, int)
    mouse_move = Signal(int, int)

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._thread: Optional[_MouseHookThread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        if self._thread is not None:
            return
        if sys.platform != "win32":
            logger.warning("Global mouse hook is only available on Windows; no events will be recorded")
            return
        self._thread = _MouseHookThread(parent=self)
        self._thread.button_pressed.connect(self.mouse_down)
        self._thread.moved.connect(self.mouse_move)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is None:
            return
        thread, self._thread = self._thread, None
        thread.request_stop()
        if not thread.wait(2000):
            logger.warning("Mouse hook thread did not exit within 2s")
