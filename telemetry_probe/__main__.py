from telemetry_probe.cli import main

main()
