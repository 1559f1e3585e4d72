import json


def test_system_init_seeds_tax_rate(app, data_service):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['system', 'init'])
    assert result.exit_code == 0, result.output
    assert "Seeded tax rate 8.0%" in result.output
    assert "ffoffice1 (office1): login enabled" in result.output

    again = runner.invoke(args=['system', 'init'])
    assert "Tax rate already configured" in again.output


def test_backup_create_validate_restore(app, data_service, tmp_path):
    data_service.add_customer({"name": "Acme"})
    runner = app.test_cli_runner()

    result = runner.invoke(args=['backup', 'create', '--out', str(tmp_path)])
    assert result.exit_code == 0, result.output
    files = list(tmp_path.glob('fireforce_backup_*.json'))
    assert len(files) == 1
    assert json.loads(files[0].read_text())["metadata"]["totalCustomers"] == 1

    result = runner.invoke(args=['backup', 'validate', str(files[0])])
    assert result.exit_code == 0
    assert "Backup is valid" in result.output

    data_service.add_customer({"name": "Walk-in"})
    result = runner.invoke(args=['backup', 'restore', str(files[0]), '--yes'])
    assert result.exit_code == 0, result.output
    assert "[100%] Restore completed successfully!" in result.output
    assert [c["name"] for c in data_service.customers] == ["Acme"]


def test_restore_without_yes_aborts_on_no(app, data_service, tmp_path):
    runner = app.test_cli_runner()
    runner.invoke(args=['backup', 'create', '--out', str(tmp_path)])
    path = next(tmp_path.glob('fireforce_backup_*.json'))
    data_service.add_customer({"name": "Keep me"})

    result = runner.invoke(args=['backup', 'restore', str(path)], input='n\n')
    assert result.exit_code == 1
    assert [c["name"] for c in data_service.customers] == ["Keep me"]


def test_invalid_backup_fails_validation(app, tmp_path):
    path = tmp_path / 'broken.json'
    path.write_text('{"version": "1.0"}', encoding='utf-8')
    result = app.test_cli_runner().invoke(args=['backup', 'validate', str(path)])
    assert result.exit_code == 1
    assert "Missing required field: data" in result.output


def test_enable_and_status(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['backup', 'enable'])
    result = runner.invoke(args=['backup', 'status'])
    # No history yet, so the output is just the stats document
    assert json.loads(result.output)["autoBackupEnabled"] is True
