import pytest

from vantaos.console import VgaConsole
from vantaos.elf import ElfError
from vantaos.keyboard import Keyboard
from vantaos.shell import Shell, normalize_path
from vantaos.vfs import DirEntry, NodeFlags, Vfs, VfsNode


class MemFile(VfsNode):
    def __init__(self, name, data=b""):
        super().__init__(name=name, flags=NodeFlags.FILE, size=len(data))
        self.data = bytearray(data)

    def read(self, offset, size):
        return bytes(self.data[offset:offset + size])

    def write(self, offset, data):
        self.data[offset:offset + len(data)] = data
        self.size = len(self.data)
        return len(data)


class MemDir(VfsNode):
    def __init__(self, name, *children):
        super().__init__(name=name, flags=NodeFlags.DIRECTORY)
        self.children = {child.name: child for child in children}

    def readdir(self, index):
        items = list(self.children.values())
        if index < len(items):
            return DirEntry(items[index].name, index)
        return None

    def finddir(self, name):
        return self.children.get(name)


class FakeLoader:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def execute(self, node, args=None):
        self.calls.append((node.name, args))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def make_shell(loader=None):
    root = MemDir(
        "/",
        MemDir("apps", MemFile("hello", b"\x7fELF")),
        MemDir("docs", MemFile("readme.txt", b"hello world")),
        MemFile("notes.txt", b"abc"),
    )
    return Shell(Vfs(root), Keyboard(), VgaConsole(), loader)


def feed(keyboard, codes):
    for code in codes:
        keyboard.handle_scancode(code)


@pytest.mark.parametrize("path", ["/a/./b/../c", "x//y/", "/..", "", "/a/b/c/../../d"])
def test_normalize_path_is_idempotent_and_absolute(path):
    once = normalize_path(path)
    assert once.startswith("/")
    assert normalize_path(once) == once
    assert "//" not in once


def test_normalize_path_collapses_components():
    assert normalize_path("/a/./b/../c") == "/a/c"
    assert normalize_path("/../..") == "/"


def test_build_full_path_relative_to_cwd():
    shell = make_shell()
    shell.set_cwd("docs")
    assert shell.cwd == "/docs"
    assert shell.build_full_path("readme.txt") == "/docs/readme.txt"
    assert shell.build_full_path("/apps/hello") == "/apps/hello"
    assert shell.build_full_path("../apps") == "/apps"


def test_set_cwd_parent_and_dot():
    shell = make_shell()
    shell.set_cwd("/apps")
    shell.set_cwd(".")
    assert shell.cwd == "/apps"
    shell.set_cwd("..")
    assert shell.cwd == "/"
    shell.set_cwd("..")
    assert shell.cwd == "/"


def test_set_cwd_errors_leave_cwd_unchanged():
    shell = make_shell()
    with pytest.raises(FileNotFoundError):
        shell.set_cwd("missing")
    with pytest.raises(NotADirectoryError):
        shell.set_cwd("notes.txt")
    assert shell.cwd == "/"


def test_file_exists_and_read_file():
    shell = make_shell()
    assert shell.file_exists("notes.txt")
    assert not shell.file_exists("nothing")
    assert shell.read_file("/docs/readme.txt") == "hello world"
    assert shell.read_file("nothing") == ""
    assert shell.read_file("docs") == ""


def test_write_file_round_trip():
    shell = make_shell()
    written = shell.write_file("notes.txt", "xyz!")
    assert written == 4
    assert shell.read_file("notes.txt") == "xyz!"
    with pytest.raises(FileNotFoundError):
        shell.write_file("absent.txt", "data")


def test_list_dir_functions():
    shell = make_shell()
    assert shell.list_dir("/") == "apps\ndocs\nnotes.txt\n"
    assert shell.list_dir_count("/") == 3
    assert shell.list_dir_entry("/", 1) == "docs"
    assert shell.list_dir_entry("/", 9) == ""
    assert shell.list_dir("/notes.txt") == ""
    assert shell.list_dir_count("/missing") == 0


def test_read_line_echoes_and_returns_text():
    shell = make_shell()
    feed(shell.keyboard, [0x23, 0x17, 0x1C])
    assert shell.read_line() == "hi"
    assert shell.console.row_text(0) == "hi"
    assert shell.console.row == 1


def test_read_line_backspace():
    shell = make_shell()
    feed(shell.keyboard, [0x23, 0x17, 0x0E, 0x1C])
    assert shell.read_line() == "h"


def test_read_line_ctrl_c_returns_empty():
    shell = make_shell()
    feed(shell.keyboard, [0x23, 0x1D, 0x2E])
    assert shell.read_line() == ""
    assert shell.console.row_text(0).endswith("^C")


def test_exec_program_falls_back_to_apps():
    loader = FakeLoader(0)
    shell = make_shell(loader)
    assert shell.exec_path("hello") == 0
    assert loader.calls == [("hello", None)]


def test_exec_program_missing_reports_path():
    shell = make_shell(FakeLoader(0))
    with pytest.raises(FileNotFoundError):
        shell.exec_program("nope", None)
    assert shell.console.row_text(0) == "exec: no such file: /nope"


def test_exec_program_directory_rejected():
    shell = make_shell(FakeLoader(0))
    with pytest.raises(IsADirectoryError):
        shell.exec_program("/docs", None)
    assert shell.console.row_text(0) == "exec: not a file"


def test_exec_program_loader_error_is_reported():
    shell = make_shell(FakeLoader(ElfError("not an executable", -4)))
    with pytest.raises(ElfError) as info:
        shell.exec_program("/apps/hello", ["x"])
    assert info.value.code == -4
    assert shell.console.row_text(0).startswith("exec failed with code -4")