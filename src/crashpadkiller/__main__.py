from crashpadkiller.cli import main

main()
