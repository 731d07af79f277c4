import pytest

from datawrangler.commands import preview
from datawrangler.errors import FieldNotFound

SALES = """Product,Quantity,Price
Videogame,8,66.5
Laptop,8,38.72
Laptop,7,77.46
Phone,,12.0
"""


@pytest.fixture
def sales_csv(tmp_path):
    path = tmp_path / "sales.csv"
    path.write_text(SALES)
    return str(path)


def test_preview(sales_csv, capsys):
    assert preview.main([sales_csv]) == 0
    output = capsys.readouterr().out.splitlines()
    assert output[0] == "Product   | Quantity | Price"
    assert output[-1] == "Phone     | NA       | 12.00"


def test_preview_filter_select_sort(sales_csv, capsys):
    args = [sales_csv, "--where", "Quantity>=8", "--select", "Product", "Price", "--sort", "Price"]
    assert preview.main(args) == 0
    assert capsys.readouterr().out.splitlines() == [
        "Product   | Price",
        "--------- | -----",
        "Laptop    | 38.72",
        "Videogame | 66.50",
    ]


def test_preview_aggregate(sales_csv, capsys):
    args = [sales_csv, "--group-by", "Product", "--agg", "Quantity:sum", "--agg", "Price:max"]
    assert preview.main(args) == 0
    assert capsys.readouterr().out.splitlines() == [
        "Product   | Quantity_sum | Price_max",
        "--------- | ------------ | ---------",
        "Videogame | 8            | 66.50    ",
        "Laptop    | 15           | 77.46    ",
        "Phone     | NA           | 12.00    ",
    ]


def test_preview_rows_and_desc(sales_csv, capsys):
    assert preview.main([sales_csv, "--sort", "Price", "--desc", "--rows", "1"]) == 0
    assert capsys.readouterr().out.splitlines()[2:] == [
        "Laptop  | 7        | 77.46",
        "... and 3 more rows",
    ]


def test_preview_errors(sales_csv, capsys):
    assert preview.main([sales_csv, "--select", "Missing"]) == 1
    assert capsys.readouterr().out.startswith("Error: Field not found: Missing")

    assert preview.main([sales_csv, "--agg", "Product:sum"]) == 1
    assert "not supported" in capsys.readouterr().out


def test_preview_missing_file(tmp_path, capsys):
    assert preview.main([str(tmp_path / "nope.csv")]) == 1
    assert capsys.readouterr().out.startswith("Error:")


@pytest.mark.parametrize(
    "condition,expected",
    [
        ("Quantity>=8", ["Videogame", "Laptop"]),
        ("Quantity = 7", ["Laptop"]),
        ("Quantity!=7", ["Videogame", "Laptop", "Phone"]),
        ("Product==Phone", ["Phone"]),
        ("Price<20", ["Phone"]),
    ],
)
def test_parse_condition(sales_csv, condition, expected):
    view = preview.CSVDataSource(sales_csv).view()
    result = view.filter(preview.parse_condition(view, condition))
    assert result.values("Product") == expected


def test_parse_condition_invalid(sales_csv):
    view = preview.CSVDataSource(sales_csv).view()
    with pytest.raises(preview.InvalidArgument):
        preview.parse_condition(view, "Quantity")
    with pytest.raises(FieldNotFound):
        preview.parse_condition(view, "Weight>1")


def test_parse_aggregation():
    assert preview.parse_aggregation("Price:mean") == ("Price", preview.MeanAggregation)
    with pytest.raises(preview.InvalidArgument):
        preview.parse_aggregation("Price")
    with pytest.raises(preview.InvalidArgument):
        preview.parse_aggregation("Price:median")


def test_preview_malformed_file(tmp_path, capsys):
    path = tmp_path / "malformed.csv"
    path.write_text("a,b\n1,2\n3\n")
    assert preview.main([str(path)]) == 1
    assert capsys.readouterr().out.startswith(f"Error: Unable to read {path}")
