from gocdpipe.cli import main

main()
