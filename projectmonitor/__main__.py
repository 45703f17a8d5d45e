from projectmonitor.cli import main

main()
