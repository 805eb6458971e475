import pytest

from storage import JsonFileStorage, MemoryStorage, StorageError


def test_memory_storage_copies():
    storage = MemoryStorage()
    blob = {"a": [1, 2]}
    storage.save(blob)
    blob["a"].append(3)

    assert storage.load() == {"a": [1, 2]}
    storage.clear()
    assert storage.load() is None


def test_missing_file_loads_nothing(tmp_path):
    assert JsonFileStorage(str(tmp_path / "none.json")).load() is None


def test_file_save_creates_folders(tmp_path):
    storage = JsonFileStorage(str(tmp_path / "a" / "b" / "desk.json"))
    storage.save({"version": 1})
    assert storage.load() == {"version": 1}

    storage.clear()
    storage.clear()
    assert storage.load() is None


@pytest.mark.parametrize("text", ["{broken", "[1, 2, 3]", ""])
def test_bad_file_raises(tmp_path, text):
    path = tmp_path / "desk.json"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileStorage(str(path)).load()
