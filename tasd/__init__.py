"""
# TASD movie files.

A TASD file (Tool Assisted Speedrun Dump) stores the inputs of a speedrun made
with the help of an emulator, so that they can be replayed on the real console,
together with a lot of metadata about the run, all as an extensible sequence
of tagged and length-prefixed records called packets.

The format is described declaratively: a Chunk is an ordered set of fields and
each field knows how to perform two operations

 1. unpack(): reading the binary data from a stream and building a high-level
    representation of that; each field reads from the actual position of the
    stream and knows how many bytes it needs.

 2. pack(): encode the high-level representation into binary data.

to these we add one more

 3. relayout(): trigger a recursive layout "negotiation" between a component
    and its subcomponents so to have offset and size set in the correct way.
    A packing also implies a relayouting.

An instance representing a chunk can be in one of the following states

 1. INIT
 2. RELAYOUTING
 3. PACKING
 4. UNPACKING
 5. DONE

The movie itself lives in tasd.movie:

    from tasd.movie import Movie, GameTitle

    movie = Movie('run.tasd')
    movie.packets.append(GameTitle('Super Mario Bros.'))
    movie.save()

"""
