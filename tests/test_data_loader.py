import pandas as pd
import pytest

from evotrees.data.data_loader import DataLoader
from evotrees.errors import DataFileNotFoundError, InputError, ParseError
from evotrees.pipelines.data_setup import FeatureConfig


def _write(tmp_path, text, name="pokemon.csv"):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_load_data_missing_file(tmp_path):
    loader = DataLoader(str(tmp_path / "missing.csv"))
    with pytest.raises(DataFileNotFoundError):
        loader.load_data()
    # sigue siendo un FileNotFoundError para quien solo conoce el builtin
    with pytest.raises(FileNotFoundError):
        loader.load_data()


def test_load_data_missing_required_columns(tmp_path, sample_table):
    bad_path = tmp_path / "incomplete.csv"
    sample_table.drop(columns=["designation"]).to_csv(bad_path, index=False)

    with pytest.raises(ParseError, match="designation"):
        DataLoader(str(bad_path)).load_data()


def test_load_data_rejects_row_with_extra_fields(tmp_path):
    path = _write(
        tmp_path,
        "name,designation,sound_0,evolution\n"
        "bulbasaur,#001,1,pre\n"
        "ivysaur,#002,2,post,extra\n",
    )
    with pytest.raises(ParseError):
        DataLoader(str(path)).load_data()


def test_load_data_rejects_every_row_one_field_too_long(tmp_path):
    # sin index_col=False pandas tomaria la primera columna como indice
    path = _write(
        tmp_path,
        "name,designation,sound_0,evolution\n"
        "bulbasaur,#001,1,3,pre\n"
        "ivysaur,#002,2,4,post\n",
    )
    with pytest.raises(ParseError, match="do not match the header"):
        DataLoader(str(path)).load_data()


def test_load_data_rejects_empty_file(tmp_path):
    path = _write(tmp_path, "")
    with pytest.raises(InputError):
        DataLoader(str(path)).load_data()


def test_validate_rejects_missing_feature_values(tmp_path):
    path = _write(
        tmp_path,
        "name,designation,sound_0,sound_1,evolution\n"
        "bulbasaur,#001,1,0,pre\n"
        "ivysaur,#002,2,,post\n",
    )
    loader = DataLoader(str(path))
    with pytest.raises(ParseError, match="Missing feature values at rows \\[3\\]"):
        loader.validate(loader.load_data())


def test_validate_rejects_missing_label_values(tmp_path):
    path = _write(
        tmp_path,
        "name,designation,sound_0,evolution\n"
        "bulbasaur,#001,1,pre\n"
        "ivysaur,#002,2,\n"
        "venusaur,#003,5,post\n",
    )
    loader = DataLoader(str(path))
    with pytest.raises(ParseError, match="Missing label values at rows \\[3\\]"):
        loader.validate(loader.load_data())


def test_validate_rejects_short_rows(tmp_path):
    path = _write(
        tmp_path,
        "name,designation,sound_0,sound_1,evolution\n"
        "bulbasaur,#001,1,0,pre\n"
        "ivysaur,#002,2\n",
    )
    loader = DataLoader(str(path))
    with pytest.raises(ParseError):
        loader.run()


def test_validate_rejects_non_numeric_and_negative_features(sample_table):
    loader = DataLoader("unused.csv")

    text_df = sample_table.astype({"sound_1": object})
    text_df.loc[3, "sound_1"] = "lots"
    with pytest.raises(ParseError, match="Non-numeric"):
        loader.validate(text_df)

    negative_df = sample_table.copy()
    negative_df.loc[0, "sound_2"] = -1
    with pytest.raises(ParseError, match="Negative"):
        loader.validate(negative_df)


def test_validate_requires_exactly_two_label_values(sample_table):
    df = sample_table.copy()
    df.loc[0, "evolution"] = "mega"
    with pytest.raises(ParseError, match="exactly two"):
        DataLoader("unused.csv").validate(df)


def test_validate_rejects_labels_outside_configured_values(sample_table):
    cfg = FeatureConfig(label_values=("basic", "evolved"))
    with pytest.raises(ParseError, match="outside"):
        DataLoader("unused.csv", feature_config=cfg).validate(sample_table)


def test_validate_coerces_label_to_ordered_categorical(sample_table):
    cfg = FeatureConfig(label_values=("pre", "post"))
    validated = DataLoader("unused.csv", feature_config=cfg).validate(sample_table)

    assert isinstance(validated["evolution"].dtype, pd.CategoricalDtype)
    assert list(validated["evolution"].cat.categories) == ["pre", "post"]
    # sin label_values el orden es alfabetico
    inferred = DataLoader("unused.csv").validate(sample_table)
    assert list(inferred["evolution"].cat.categories) == ["post", "pre"]


def test_run_loads_validates_and_keeps_identifiers(tmp_path, sample_table):
    input_path = tmp_path / "raw.csv"
    sample_table.to_csv(input_path, index=False)

    df = DataLoader(str(input_path)).run()

    assert df.shape == sample_table.shape
    assert {"name", "designation"}.issubset(df.columns)
    assert df["sound_0"].dtype.kind in "iuf"


def test_run_supports_other_delimiters(tmp_path, sample_table):
    input_path = tmp_path / "raw.tsv"
    sample_table.to_csv(input_path, index=False, sep="\t")

    df = DataLoader(str(input_path), sep="\t").run()
    assert len(df) == len(sample_table)
