def test_import_eshara_package() -> None:
    import importlib

    module = importlib.import_module("eshara")
    assert module is not None
    assert module.__version__


def test_import_scheduler_no_side_effects() -> None:
    from eshara.services.scheduler import Scheduler

    assert Scheduler().effective_seconds(10) == 10
