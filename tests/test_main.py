import sys

import main


def test_train_save_predict(tmp_path, monkeypatch):
    training = tmp_path / "train.tsv"
    training.write_text("a\tx\na\ty\nb\ty\nb\tz\nc\tx\n")
    model_path = tmp_path / "mf.model"
    pred_path = tmp_path / "pred.tsv"

    monkeypatch.setattr(sys, "argv", [
        "main.py",
        "--training_file", str(training),
        "--test_file", str(training),
        "--num_iter", "3",
        "--num_predictions", "1",
        "--save_model", str(model_path),
        "--prediction_file", str(pred_path),
    ])
    main.main()

    lines = pred_path.read_text().splitlines()
    assert [line.split("\t")[0] for line in lines] == ["a", "b", "c"]
    assert lines[0].startswith("a\t[z:")
    assert lines[1].startswith("b\t[x:")
    assert model_path.exists()
    assert (tmp_path / "mf.users.tsv").read_text() == "0\ta\n1\tb\n2\tc\n"

    monkeypatch.setattr(sys, "argv", [
        "main.py",
        "--training_file", str(training),
        "--load_model", str(model_path),
        "--num_factors", "3",
        "--prediction_file", str(pred_path),
    ])
    main.main()
    assert len(pred_path.read_text().splitlines()) == 3


def test_candidates_come_from_training_items(tmp_path, monkeypatch):
    training = tmp_path / "train.tsv"
    training.write_text("a\tx\na\ty\nb\ty\nb\tz\nc\tx\n")
    test = tmp_path / "test.tsv"
    test.write_text("c\tw\na\tz\n")
    pred_path = tmp_path / "pred.tsv"

    monkeypatch.setattr(sys, "argv", [
        "main.py",
        "--training_file", str(training),
        "--test_file", str(test),
        "--num_iter", "2",
        "--num_predictions", "-1",
        "--prediction_file", str(pred_path),
    ])
    main.main()

    text = pred_path.read_text()
    assert "w:" not in text
    assert text.splitlines()[2].startswith("c\t[")
