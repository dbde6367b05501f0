import pytest

from vantaos.vfs import MAX_NAME, DirEntry, NodeFlags, Vfs, VfsError, VfsNode


class MemFile(VfsNode):
    def __init__(self, name, content=b""):
        super().__init__(name, NodeFlags.FILE, len(content))
        self.content = content

    def read(self, offset, size):
        return self.content[offset:offset + size]


class MemDir(VfsNode):
    def __init__(self, name, children=()):
        super().__init__(name, NodeFlags.DIRECTORY)
        self.children = list(children)
        self.lookups = []

    def readdir(self, index):
        if index < len(self.children):
            child = self.children[index]
            return DirEntry(child.name, child.inode)
        return None

    def finddir(self, name):
        self.lookups.append(name)
        return next((c for c in self.children if c.name == name), None)


@pytest.fixture
def tree():
    hello = MemFile("hello.txt", b"hi there")
    sub = MemDir("sub", [hello])
    root = MemDir("/", [sub, MemFile("top.bin", b"xyz")])
    return root, sub, hello


def test_root_path(tree):
    root, _, _ = tree
    assert Vfs(root).resolve_path("/") is root


def test_nested_path(tree):
    root, _, hello = tree
    assert Vfs(root).resolve_path("/sub/hello.txt") is hello


def test_relative_and_repeated_slashes(tree):
    root, sub, hello = tree
    vfs = Vfs(root)
    assert vfs.resolve_path("sub/hello.txt") is hello
    assert vfs.resolve_path("//sub//hello.txt/") is hello
    assert vfs.resolve_path("/sub/") is sub


def test_empty_path_is_root(tree):
    root, _, _ = tree
    assert Vfs(root).resolve_path("") is root


def test_missing_component(tree):
    root, _, _ = tree
    assert Vfs(root).resolve_path("/sub/nothing") is None


def test_cannot_descend_through_file(tree):
    root, _, _ = tree
    assert Vfs(root).resolve_path("/top.bin/x") is None


def test_no_root():
    assert Vfs().resolve_path("/") is None


def test_none_path(tree):
    root, _, _ = tree
    assert Vfs(root).resolve_path(None) is None


def test_long_component_truncated():
    root = MemDir("/")
    Vfs(root).resolve_path("/" + "a" * 300)
    assert root.lookups == ["a" * (MAX_NAME - 1)]


def test_node_flags(tree):
    root, _, _ = tree
    vfs = Vfs(root)
    directory = vfs.resolve_path("/sub")
    regular = vfs.resolve_path("/sub/hello.txt")
    assert directory.is_directory and not directory.is_file
    assert regular.is_file and not regular.is_directory
    plain = VfsNode("plain", NodeFlags.FILE)
    assert plain.is_file and not plain.is_directory


def test_base_read_and_write_raise():
    node = VfsNode("plain", NodeFlags.FILE)
    with pytest.raises(VfsError):
        node.read(0, 4)
    with pytest.raises(VfsError):
        node.write(0, b"data")


def test_base_directory_operations_return_none():
    node = VfsNode("d", NodeFlags.DIRECTORY)
    assert node.readdir(0) is None
    assert node.finddir("x") is None


def test_subclass_readdir(tree):
    _, sub, hello = tree
    assert sub.readdir(0) == DirEntry("hello.txt", hello.inode)
    assert sub.readdir(1) is None
    assert hello.read(3, 5) == b"there"