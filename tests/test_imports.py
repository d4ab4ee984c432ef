def test_import_novella_package() -> None:
    import importlib

    module = importlib.import_module("novella")
    assert module.__version__


def test_import_entry_point_without_side_effects() -> None:
    from novella.main import main

    assert callable(main)
