from permset_revoker.runner import main

main()
